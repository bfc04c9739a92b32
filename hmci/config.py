# -----------------------------------------------------------------------------
# Copyright (c) 2025 HMC Insights
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Configuration: a YAML file, overridden by HMCI_ environment variables.

Nested keys use a double underscore, e.g. HMCI_INFLUX__URL or
HMCI_HMC__SITE1__PASSWORD. A .env file next to the working directory (or
given explicitly) is loaded into the environment first.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple, Type

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

logger = logging.getLogger(__name__)


class InfluxSettings(BaseModel):
    url: str = 'http://localhost:8086'
    username: str = 'root'
    password: str = ''
    database: str = 'hmci'
    retention: str = '156w'
    timeout: float = Field(default=30, gt=0)
    retries: int = Field(default=3, ge=0)
    batch_size: int = Field(default=5000, gt=0)
    error_threshold: int = Field(default=5, gt=0)
    connect_attempts: int = Field(default=5, gt=0)
    connect_delay: float = Field(default=15, ge=0)


class HmcSettings(BaseModel):
    url: str
    username: str
    password: str
    unsafe: bool = False  # trust any certificate
    energy: bool = True
    trace: Optional[str] = None  # directory for raw PCM JSON
    connect_timeout: float = Field(default=30, gt=0)
    write_timeout: float = Field(default=30, gt=0)
    read_timeout: float = Field(default=180, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='HMCI_', env_nested_delimiter='__',
                                      case_sensitive=False, extra='ignore')

    interval_time: float = Field(default=30, gt=0)
    threads: int = Field(default=4, gt=0)
    influx: InfluxSettings = Field(default_factory=InfluxSettings)
    hmc: Dict[str, HmcSettings] = Field(default_factory=dict)

    @classmethod
    def settings_customise_sources(cls, settings_cls: Type[BaseSettings],
                                   init_settings: PydanticBaseSettingsSource,
                                   env_settings: PydanticBaseSettingsSource,
                                   dotenv_settings: PydanticBaseSettingsSource,
                                   file_secret_settings: PydanticBaseSettingsSource
                                   ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values read from the YAML file
        return env_settings, init_settings, file_secret_settings


def load_settings(config_file: Optional[str] = None, env_file: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML file and the environment.

    Args:
        config_file: Path to the YAML configuration
        env_file: Path to a .env file; defaults to .env in the working directory

    Returns:
        Validated Settings

    Raises:
        FileNotFoundError: config_file does not exist
        pydantic.ValidationError: Invalid configuration
    """
    load_dotenv(dotenv_path=env_file or Path.cwd() / '.env')

    data = {}
    if config_file:
        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        logger.debug(f"Loading configuration from file: {config_file}")
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {config_file} must contain a mapping")

    return Settings(**data)
