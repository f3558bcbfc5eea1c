"""
Config Module
Purpose: Layered configuration for the billing report

Precedence (lowest to highest):
  1. get_default_config()
  2. YAML config file (optional)
  3. Environment, after loading .env and ~/.netbird-msp.env
  4. Command-line overrides
"""

import copy
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger

from netbird_msp.exceptions import ConfigurationError

DEFAULT_CONFIG = "config.yaml"
DEFAULT_API_URL = "https://api.netbird.io/api"
TOKEN_ENV_VAR = "NETBIRD_API_TOKEN"
API_URL_ENV_VAR = "NETBIRD_API_URL"
OUTPUT_DIR_ENV_VAR = "NETBIRD_OUTPUT_DIR"

MISSING_TOKEN_HELP = f"""{TOKEN_ENV_VAR} environment variable is not set.

Setup Instructions:
1. Copy .env.example to .env: cp .env.example .env
2. Edit .env and set your NetBird API token
3. Alternatively, export the variable: export {TOKEN_ENV_VAR}=your_token
   (or put it in ~/.netbird-msp.env)
"""


def get_default_config() -> Dict:
    return {
        "api": {
            "base_url": DEFAULT_API_URL,
            "auth_scheme": "Token",
            "connect_timeout": 10,
            "read_timeout": 30,
        },
        "output": {
            "directory": ".",
            "file_prefix": "netbird_comprehensive",
            "excel": False,
        },
        "plan_detection": {
            # dotted paths, tried in order; first non-empty string wins
            "candidate_fields": ["plan", "subscription.plan", "tier", "name", "product"],
            # (substring, label), checked in order
            "keywords": [["business", "Business"], ["team", "Team"]],
        },
        "report": {
            "report_type": "comprehensive_billing_analysis",
            "version": "2.0",
            "description": (
                "Comprehensive analysis comparing registered users vs billable users "
                "using NetBird's official billing API"
            ),
        },
        "logging": {"level": "INFO", "file": None},
    }


def merge_dict(base: Dict, override: Dict) -> None:
    for k, v in (override or {}).items():
        if k in base and isinstance(base[k], dict) and v is None:
            # a section whose keys are all commented out parses as null
            continue
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            merge_dict(base[k], v)
        else:
            base[k] = v


def load_config(path: Optional[str] = None) -> Dict:
    """Defaults merged with the YAML file at `path` (if it exists)"""
    base = get_default_config()
    path = path or DEFAULT_CONFIG
    if not os.path.exists(path):
        logger.debug(f"Config file {path} not found. Using defaults.")
        return base

    try:
        with open(path, "r") as fh:
            cfg = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at the top level")

    merge_dict(base, cfg)
    for section, value in get_default_config().items():
        if isinstance(value, dict) and not isinstance(base[section], dict):
            raise ConfigurationError(f"Config file {path}: section '{section}' must be a mapping")
    logger.info(f"Loaded config: {path}")
    return base


def env_file_candidates() -> List[Path]:
    return [Path.cwd() / ".env", Path.home() / ".netbird-msp.env"]


def load_env_files(paths: Optional[List[Path]] = None) -> List[Path]:
    """Load dotenv files without overriding variables already set"""
    loaded = []
    for path in paths if paths is not None else env_file_candidates():
        if path.is_file():
            load_dotenv(path, override=False)
            loaded.append(path)
            logger.debug(f"Loaded environment file: {path}")
    return loaded


class Settings:
    """Resolved settings for one report run"""

    def __init__(self, api_token: str, cfg: Dict):
        self.api_token = api_token
        self.cfg = cfg

    @property
    def base_url(self) -> str:
        return str(self.cfg["api"]["base_url"]).rstrip("/")

    @property
    def output_dir(self) -> Path:
        return Path(self.cfg["output"]["directory"])

    @property
    def excel(self) -> bool:
        return bool(self.cfg["output"].get("excel", False))

    def __repr__(self) -> str:
        # never show the token
        return f"Settings(base_url={self.base_url!r}, output_dir={str(self.output_dir)!r})"


def resolve_settings(
    config_path: Optional[str] = None,
    overrides: Optional[Dict] = None,
    environ: Optional[Dict] = None,
    env_files: Optional[List[Path]] = None,
) -> Settings:
    """
    Build Settings from every configuration layer.

    Raises:
        ConfigurationError: the API token is missing or the config file is invalid
    """
    cfg = load_config(config_path)

    if environ is None:
        load_env_files(env_files)
        environ = os.environ

    if environ.get(API_URL_ENV_VAR):
        cfg["api"]["base_url"] = environ[API_URL_ENV_VAR]
    if environ.get(OUTPUT_DIR_ENV_VAR):
        cfg["output"]["directory"] = environ[OUTPUT_DIR_ENV_VAR]

    merge_dict(cfg, copy.deepcopy(overrides or {}))

    token = (environ.get(TOKEN_ENV_VAR) or cfg["api"].get("token") or "").strip()
    if not token:
        raise ConfigurationError(MISSING_TOKEN_HELP)
    cfg["api"].pop("token", None)

    return Settings(api_token=token, cfg=cfg)
