"""Configuration file loading.

The file uses the gnupg style: one option per line, the option name
followed by its value, with '#' starting a comment.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass

from cardauth.core.errors import ConfigurationError
from cardauth.core.scd import DEFAULT_KEY_ID

lg = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "/etc/cardauth/cardauth.conf"

AUTH_METHODS = ("localdb", "x509")


@dataclass
class Config:
    log_file: str | None = None
    debug: bool = False
    wait_timeout: int = 0
    auth_method: str = "localdb"
    scdaemon_program: str = "/usr/bin/scdaemon"
    scdaemon_options: str | None = None
    scdaemon_socket: str | None = None
    dirmngr_program: str = "/usr/bin/dirmngr"
    dirmngr_socket: str | None = None
    x509_domain: str | None = None
    key_directory: str = "/etc/cardauth/keys"
    users_db: str = "/etc/cardauth/users"
    key_id: str = DEFAULT_KEY_ID
    digest: str = "sha1"


# option name -> (field, kind)
_OPTIONS: dict[str, tuple[str, str]] = {
    "log-file": ("log_file", "str"),
    "debug": ("debug", "flag"),
    "wait-timeout": ("wait_timeout", "int"),
    "auth-method": ("auth_method", "method"),
    "scdaemon-program": ("scdaemon_program", "str"),
    "scdaemon-options": ("scdaemon_options", "str"),
    "scdaemon-socket": ("scdaemon_socket", "str"),
    "dirmngr-program": ("dirmngr_program", "str"),
    "dirmngr-socket": ("dirmngr_socket", "str"),
    "x509-domain": ("x509_domain", "str"),
    "key-directory": ("key_directory", "str"),
    "users-db": ("users_db", "str"),
    "key-id": ("key_id", "str"),
    "digest": ("digest", "str"),
}


def parse_option(line: str) -> tuple[str, list[str]] | None:
    """Parse a config line into (option, values).

    Returns None for blank/comment lines.
    """
    stripped = line.split("#", 1)[0].strip()
    if not stripped:
        return None
    try:
        parts = shlex.split(stripped)
    except ValueError as exc:
        raise ConfigurationError(f"cannot parse {stripped!r}: {exc}") from exc
    return parts[0], parts[1:]


def _convert(name: str, kind: str, values: list[str]) -> object:
    if kind == "flag":
        if values:
            raise ConfigurationError(f"option {name} takes no value")
        return True
    if len(values) != 1:
        raise ConfigurationError(f"option {name} takes exactly one value")
    value = values[0]
    if kind == "int":
        try:
            number = int(value)
        except ValueError:
            raise ConfigurationError(f"option {name} needs a number, got {value!r}") from None
        if number < 0:
            raise ConfigurationError(f"option {name} must not be negative")
        return number
    if kind == "method" and value not in AUTH_METHODS:
        raise ConfigurationError(f"unknown authentication method {value!r}")
    return value


def parse_config(lines: list[str], source: str = "<config>") -> Config:
    config = Config()
    for lineno, line in enumerate(lines, 1):
        try:
            parsed = parse_option(line)
            if parsed is None:
                continue
            name, values = parsed
            option = _OPTIONS.get(name)
            if option is None:
                raise ConfigurationError(f"unknown option {name!r}")
            field_name, kind = option
            setattr(config, field_name, _convert(name, kind, values))
        except ConfigurationError as exc:
            raise ConfigurationError(f"{source}:{lineno}: {exc}") from None
    return config


def load_config(path: str, missing_ok: bool = False) -> Config:
    """Read *path*; with *missing_ok* an absent file yields the defaults."""
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError:
        if missing_ok:
            lg.debug("no configuration file at %s, using defaults", path)
            return Config()
        raise ConfigurationError(f"configuration file {path} not found") from None
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc
    return parse_config(lines, path)
