# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Session-based REST client for the HMC.

The HMC hands out an X-API-Session token on logon. Tokens expire on the HMC
side without notice, so a 401 answer triggers one fresh logon and one retry
of the same request.
"""

import logging
import ssl
import threading
import xml.etree.ElementTree as ET
from typing import Dict, Optional
from urllib.parse import urljoin
from xml.sax.saxutils import escape

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3 import PoolManager
from urllib3.util.ssl_ import create_urllib3_context

LOG = logging.getLogger(__name__)

LOGON_PATH = '/rest/api/web/Logon'
SESSION_HEADER = 'X-API-Session'
AUDIT_MEMENTO = 'IBM Power HMC Insights'

LOGON_REQUEST = (
    "<?xml version='1.0' encoding='UTF-8' standalone='yes'?>"
    "<LogonRequest xmlns='http://www.ibm.com/xmlns/systems/power/firmware/web/mc/2012_10/' schemaVersion='V1_0'>"
    "<UserID>{username}</UserID>"
    "<Password>{password}</Password>"
    "</LogonRequest>"
)
LOGON_HEADERS = {
    'Accept': 'application/vnd.ibm.powervm.web+xml; type=LogonResponse',
    'Content-Type': 'application/vnd.ibm.powervm.web+xml; type=LogonRequest',
    'X-Audit-Memento': AUDIT_MEMENTO,
}
POST_CONTENT_TYPE = 'application/xml, application/vnd.ibm.powervm.pcm.dita'


class LogonError(Exception):
    """The HMC did not hand out a session token."""


class SSLAdapter(HTTPAdapter):
    """An HTTPS Transport Adapter that uses an explicit SSL context."""
    def __init__(self, verify_flags=ssl.VERIFY_DEFAULT, **kwargs):
        self.verify_flags = verify_flags
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        context = create_urllib3_context(verify_flags=self.verify_flags)
        self.poolmanager = PoolManager(num_pools=connections, maxsize=maxsize,
                                       block=block, ssl_context=context, **pool_kwargs)


class RestClient:
    """
    HMC REST session.

    Args:
        base_url: HMC base URL, e.g. https://hmc01:12443
        username: HMC user
        password: HMC password
        trust_all: Skip certificate and hostname verification
        connect_timeout: Seconds to establish the connection
        write_timeout: Seconds to send the request
        read_timeout: Seconds to wait for the response
        session: Preconfigured requests.Session, mainly for tests
    """

    def __init__(self, base_url: str, username: str, password: str,
                 trust_all: bool = False,
                 connect_timeout: float = 30,
                 write_timeout: float = 30,
                 read_timeout: float = 180,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.username = username
        self.password = password
        self.auth_token: Optional[str] = None
        # requests has no write timeout; it is folded into the total budget
        self.timeout = urllib3.Timeout(connect=connect_timeout, read=read_timeout,
                                       total=connect_timeout + write_timeout + read_timeout)
        self._lock = threading.RLock()
        self.session = session if session is not None else self._create_session(trust_all)

    @staticmethod
    def _create_session(trust_all: bool) -> requests.Session:
        session = requests.Session()
        if trust_all:
            session.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            LOG.warning("TLS validation is DISABLED (verify=False). This is insecure and should only be used for testing.")
        else:
            session.mount('https://', SSLAdapter())
        return session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.logoff()
        return False

    def _url(self, path: str) -> str:
        # Atom feeds link with absolute URLs
        if path.startswith('http://') or path.startswith('https://'):
            return path
        return urljoin(self.base_url + '/', path.lstrip('/'))

    def login(self) -> None:
        """
        Log on and store the session token.

        Raises:
            LogonError: The response carried no token
            requests.exceptions.RequestException: Transport failure or HTTP error
        """
        with self._lock:
            url = self._url(LOGON_PATH)
            payload = LOGON_REQUEST.format(username=escape(self.username), password=escape(self.password))
            LOG.info(f"Logging on to HMC {self.base_url} as {self.username}")

            response = self.session.put(url, data=payload.encode('utf-8'), headers=LOGON_HEADERS,
                                        timeout=self.timeout)
            response.raise_for_status()

            token = self._parse_logon_response(response.text)
            if not token:
                raise LogonError(f"No {SESSION_HEADER} in logon response from {self.base_url}")
            self.auth_token = token
            LOG.debug(f"Logged on to HMC {self.base_url}")

    @staticmethod
    def _parse_logon_response(body: str) -> Optional[str]:
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            raise LogonError(f"Unparseable logon response: {e}") from e
        element = root.find(f'.//{{*}}{SESSION_HEADER}')
        if element is None or element.text is None:
            return None
        return element.text.strip() or None

    def logoff(self) -> None:
        """End the HMC session. Network errors are logged, the token is always cleared."""
        with self._lock:
            if self.auth_token is None:
                return
            try:
                response = self.session.delete(self._url(LOGON_PATH),
                                               headers={SESSION_HEADER: self.auth_token},
                                               timeout=self.timeout)
                LOG.debug(f"Logoff from {self.base_url} returned HTTP {response.status_code}")
            except requests.exceptions.RequestException as e:
                LOG.warning(f"Logoff from {self.base_url} failed: {e}")
            finally:
                self.auth_token = None

    def get(self, path: str, headers: Optional[Dict[str, str]] = None) -> str:
        """GET a resource and return the body text."""
        return self._request('GET', path, headers=headers)

    def post(self, path: str, payload: Optional[str] = None,
             headers: Optional[Dict[str, str]] = None) -> str:
        """POST a payload and return the body text."""
        request_headers = {'Content-Type': POST_CONTENT_TYPE}
        if headers:
            request_headers.update(headers)
        data = payload.encode('utf-8') if payload is not None else None
        return self._request('POST', path, headers=request_headers, data=data)

    def _request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None,
                 data: Optional[bytes] = None) -> str:
        with self._lock:
            url = self._url(path)
            response = self._send(method, url, headers, data)

            if response.status_code == 401:
                LOG.warning(f"HMC session expired or invalid ({method} {url}), logging on again")
                self.login()
                response = self._send(method, url, headers, data)

            if response.status_code >= 400:
                LOG.error(f"{method} {url} failed: HTTP {response.status_code}")
                response.raise_for_status()

            return response.text

    def _send(self, method: str, url: str, headers: Optional[Dict[str, str]],
              data: Optional[bytes]) -> requests.Response:
        request_headers = {SESSION_HEADER: self.auth_token or ''}
        if headers:
            request_headers.update(headers)
        LOG.debug(f"{method} {url}")
        return self.session.request(method, url, headers=request_headers, data=data,
                                    timeout=self.timeout)
