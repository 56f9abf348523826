"""JSON body editing in an external editor.

The edit runs in three phases so the caller can release the terminal in
between:

1. ``prepare`` seeds a temp file and returns a BodyEditRequest.
2. ``run_editor`` runs the editor on that file to completion.
3. ``collect`` reads whatever the file holds (even after an editor failure),
   removes it and validates the content.
"""

import json
import logging
import math
import os
import shlex
import subprocess
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from xhark.client.request import load_single_json, parse_scalar
from xhark.parser.base import Endpoint

logger = logging.getLogger(__name__)

DEFAULT_EDITOR = "vi"
EMPTY_SEED = "{}\n"


class BodyEditRequest(BaseModel):
    """A pending editor session on a seeded temp file."""

    model_config = ConfigDict(frozen=True)

    path: Path
    command: list[str]


class EditorOutcome(BaseModel):
    """What came back from the editor: file content plus any failure."""

    model_config = ConfigDict(frozen=True)

    content: str = ""
    error: str = ""


def editor_command(configured: str = "") -> list[str]:
    """The editor argv: ``configured``, then $EDITOR, then vi."""
    command = configured.strip() or os.getenv("EDITOR", "").strip()
    args = shlex.split(command) if command else []
    return args or [DEFAULT_EDITOR]


def coerce_json_scalar(param_type: str, raw: str):
    """JSON-native value for ``raw``; unparsable or non-finite values stay strings."""
    raw = raw.strip()
    if param_type in ("integer", "number", "boolean"):
        value = parse_scalar(param_type, raw)
        if value is not None and (param_type != "number" or math.isfinite(value)):
            return value
    return raw


def seed_body(endpoint: Endpoint, body_values: dict[str, str], raw_body: str = "") -> str:
    """Initial editor content.

    The current raw override wins. Otherwise each field contributes its
    default, else its example, else the value typed in the builder; fields
    resolving to nothing are skipped.
    """
    seed = raw_body.strip()
    if not seed and endpoint.body is not None:
        obj = {}
        for f in endpoint.body.fields:
            value = f.default.strip() or f.example.strip() or body_values.get(f.name, "").strip()
            if not value:
                continue
            obj[f.name] = coerce_json_scalar(f.param_type, value)
        if obj:
            seed = json.dumps(obj, indent=2, allow_nan=False)
    if not seed:
        return EMPTY_SEED
    return seed if seed.endswith("\n") else seed + "\n"


def prepare(endpoint: Endpoint, body_values: dict[str, str], raw_body: str, configured_editor: str = "") -> BodyEditRequest:
    """Phase 1: write the seed to a temp file. Raises OSError."""
    fd, name = tempfile.mkstemp(prefix="xhark-body-", suffix=".json")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(seed_body(endpoint, body_values, raw_body))
    return BodyEditRequest(path=Path(name), command=editor_command(configured_editor))


def run_editor(request: BodyEditRequest) -> EditorOutcome:
    """Phase 2: run the editor in the foreground; never raises."""
    argv = [*request.command, str(request.path)]
    logger.debug("launching editor: %s", argv)
    try:
        subprocess.run(argv, check=True)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("editor failed: %s", e)
        return EditorOutcome(error=f"editor failed: {e}")
    return EditorOutcome()


def collect(request: BodyEditRequest, outcome: EditorOutcome) -> EditorOutcome:
    """Phase 3: read and remove the temp file, keeping any editor error."""
    try:
        content = request.path.read_text(encoding="utf-8")
    except FileNotFoundError:
        content = ""
    except OSError as e:
        return EditorOutcome(error=outcome.error or f"read {request.path}: {e}")
    finally:
        request.path.unlink(missing_ok=True)
    return EditorOutcome(content=content, error=outcome.error)


def normalize_body(content: str) -> str:
    """Validate editor output as one JSON value and re-serialize it.

    Empty content returns "" (no raw body). Raises ValueError otherwise.
    """
    if not content.strip():
        return ""
    try:
        return json.dumps(load_single_json(content), indent=2, allow_nan=False)
    except ValueError as e:
        raise ValueError(f"invalid json body: {e}") from e
