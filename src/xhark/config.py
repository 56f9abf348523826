import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from xhark.parser.swagger import FILE_MARKER

load_dotenv()


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


@dataclass
class Config:
    """Application configuration, read from the environment."""

    # Description source and target API
    spec_url: str = field(default_factory=lambda: _env("XHARK_SPEC_URL"))
    spec_file: str = field(default_factory=lambda: _env("XHARK_SPEC_FILE"))
    base_url: str = field(default_factory=lambda: _env("XHARK_BASE_URL"))

    # XHARK_DEBUG=1 turns on file logging
    debug: bool = field(default_factory=lambda: _env("XHARK_DEBUG") == "1")
    log_file: Path = field(
        default_factory=lambda: Path(_env("XHARK_LOG_FILE") or Path(tempfile.gettempdir()) / "xhark.log")
    )

    # Falls back to $EDITOR, then vi
    editor: str = field(default_factory=lambda: _env("XHARK_EDITOR"))

    # Timeouts (seconds)
    load_timeout: float = 5.0
    request_timeout: float = 20.0
    token_timeout: float = 10.0


def resolve_spec_source(spec_url: str = "", spec_file: str = "", config: Config | None = None) -> str:
    """Pick the description source.

    Flags win over the environment: --spec-url, then --spec-file, then
    XHARK_SPEC_FILE, then XHARK_SPEC_URL. Local files are returned as
    ``@<absolute path>``; "" when nothing is configured.
    """
    config = config or Config()
    if spec_url.strip():
        return spec_url.strip()
    if spec_file.strip():
        return _file_source(spec_file)
    if config.spec_file:
        return _file_source(config.spec_file)
    return config.spec_url


def _file_source(path: str) -> str:
    return FILE_MARKER + str(Path(path.strip()).expanduser().resolve())
