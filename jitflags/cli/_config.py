from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Mapping, Optional, TextIO, Tuple

# Relative default searched under the current working directory
DEFAULT_REL = Path("configs") / "jitflags.yaml"
ENV_VAR = "JITFLAGS_CONFIG"


def _coerce_candidate(p: Path) -> Optional[Path]:
    """Return a concrete settings file if the candidate exists.

    Accepts a file path *or* a directory; directories are resolved to
    "jitflags.yaml" inside that directory.
    """
    if p.is_dir():
        p = p / "jitflags.yaml"
    if p.is_file():
        return p.resolve()
    return None


def discover_config_path(
    explicit: Optional[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Tuple[Optional[Path], str]:
    """Deterministic settings discovery.

    Order (only when an explicit path is not given):
      1) $JITFLAGS_CONFIG (file or dir -> jitflags.yaml)
      2) CWD: ./configs/jitflags.yaml

    Returns (selected_path or None, source_tag). Source tags: 'explicit',
    'explicit-missing', 'env:JITFLAGS_CONFIG', 'cwd:configs/jitflags.yaml', 'none'.
    """
    cwd = cwd or Path.cwd()
    env = dict(env or {})

    if explicit:
        expanded = Path(os.path.expandvars(explicit)).expanduser()
        sel = _coerce_candidate(expanded)
        if sel is not None:
            return sel, "explicit"
        return expanded, "explicit-missing"

    cenv = env.get(ENV_VAR)
    if cenv:
        sel = _coerce_candidate(Path(os.path.expandvars(cenv)).expanduser())
        if sel is not None:
            return sel, f"env:{ENV_VAR}"

    sel = _coerce_candidate(cwd / DEFAULT_REL)
    if sel is not None:
        return sel, "cwd:configs/jitflags.yaml"

    return None, "none"


def maybe_log_selected(
    path: Optional[Path], source: str, *, verbose: bool = False, stream: Optional[TextIO] = None
) -> None:
    """One-line note about the selected settings file, to stderr, when verbose."""
    if not verbose:
        return
    if stream is None:
        stream = sys.stderr
    if path is None:
        stream.write("[jitflags] settings: none (using defaults)\n")
    else:
        stream.write(f"[jitflags] settings: {path} ({source})\n")
    stream.flush()


__all__ = ["DEFAULT_REL", "ENV_VAR", "discover_config_path", "maybe_log_selected"]
