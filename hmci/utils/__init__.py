# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

import os
import logging
import re
from datetime import datetime

LOG = logging.getLogger(__name__)


def get_trace_output_path(kind, entity_id=None, outdir=None):
    """Generate a timestamped file path for raw PCM JSON traces."""
    directory = outdir if outdir else '.'
    os.makedirs(directory, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d%H%M%S')

    if entity_id:
        # Keep file names filesystem-safe
        clean_id = re.sub(r'[^A-Za-z0-9_.-]', '', str(entity_id))
        filename = f"{kind}_{clean_id}_{timestamp}.json"
    else:
        LOG.warning(f"Missing entity id for {kind} trace. File will not have an entity identifier.")
        filename = f"{kind}_{timestamp}.json"

    return os.path.join(directory, filename)


def write_trace(kind, entity_id, payload, outdir):
    """Write a raw PCM payload to the trace directory. Failures are logged, never raised."""
    try:
        path = get_trace_output_path(kind, entity_id, outdir)
        with open(path, 'w') as f:
            f.write(payload)
        LOG.debug(f"Wrote {kind} trace to {path}")
        return path
    except OSError as e:
        LOG.warning(f"Failed to write {kind} trace to {outdir}: {e}")
        return None
