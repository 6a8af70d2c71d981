from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from atp_visualizer.core.config.viewer_config import DEFAULT_CONFIG, ViewerConfig
from atp_visualizer.core.errors import PlanLoadError, PlanValidationError
from atp_visualizer.core.result import (
    ERROR_NO_PLAN,
    ERROR_READ_FAILED,
    ERROR_VALIDATION_FAILED,
    ParseFailure,
    ParseResult,
)
from atp_visualizer.core.validate.validate_plan import parse_atp_json


logger = logging.getLogger(__name__)


def load_plan(path: Optional[str]) -> ParseResult:
    """Read and validate an ATP plan file.

    Never raises: a missing selection, an unreadable file and an internal
    validator fault all come back as a ParseFailure.
    """

    if not path:
        return ParseFailure(error=ERROR_NO_PLAN, errors=[])

    p = Path(path)
    try:
        raw_text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("failed to read %s: %s", p, e)
        return ParseFailure(
            error=ERROR_READ_FAILED,
            errors=[PlanLoadError(code="E_FILE_READ", message=str(e), file=str(p))],
        )

    try:
        result = parse_atp_json(raw_text)
    except Exception as e:
        logger.exception("validator fault while reading %s", p)
        return ParseFailure(
            error=ERROR_VALIDATION_FAILED,
            errors=[
                PlanValidationError(
                    code="E_INTERNAL",
                    message=f"Unexpected error while validating ATP plan: {e}",
                    file=str(p),
                )
            ],
        )

    logger.debug("loaded %s (success=%s)", p, result.success)
    return result


def find_default_plan(
    roots: Iterable[str | Path], config: ViewerConfig = DEFAULT_CONFIG
) -> Optional[Path]:
    """Locate the plan to show when none was selected.

    A ``.atp.json`` directly inside a root wins; otherwise the first
    ``*.atp.json`` found below the roots, outside excluded directories.
    """

    root_paths = [Path(r) for r in roots]

    for root in root_paths:
        candidate = root / config.default_plan_name
        if candidate.is_file():
            logger.debug("using default plan %s", candidate)
            return candidate

    matches: list[Path] = []
    for root in root_paths:
        if not root.is_dir():
            continue
        for found in sorted(root.glob(config.plan_glob)):
            if not found.is_file() or _is_excluded(found.relative_to(root), config):
                continue
            matches.append(found)
            if len(matches) >= config.max_matches:
                break
        if len(matches) >= config.max_matches:
            break

    if not matches:
        logger.debug("no ATP plan found under %s", [str(r) for r in root_paths])
        return None
    logger.debug("discovered plans: %s", [str(m) for m in matches])
    return matches[0]


def resolve_plan_path(
    explicit: Optional[str],
    roots: Iterable[str | Path],
    config: ViewerConfig = DEFAULT_CONFIG,
) -> Optional[str]:
    if explicit:
        return explicit
    found = find_default_plan(roots, config)
    return str(found) if found is not None else None


def _is_excluded(relative: Path, config: ViewerConfig) -> bool:
    return any(part in config.exclude_dirs for part in relative.parts[:-1])
