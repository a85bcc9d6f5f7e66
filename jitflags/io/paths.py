import os
import tempfile
from pathlib import Path


def logs_dir() -> Path:
    """
    Resolve the logs directory with the following precedence:
    1) JITFLAGS_LOG_DIR (env)
    2) ./.logs under the current working directory
    3) {tempdir}/jitflags/logs (final fallback)

    Ensures the directory exists and returns a Path.
    """
    v = os.environ.get("JITFLAGS_LOG_DIR")
    if v:
        p = Path(v)
        p.mkdir(parents=True, exist_ok=True)
        return p.resolve()

    p = Path.cwd() / ".logs"
    try:
        p.mkdir(parents=True, exist_ok=True)
        return p.resolve()
    except OSError:
        t = temp_root() / "jitflags" / "logs"
        t.mkdir(parents=True, exist_ok=True)
        return t.resolve()


def temp_root() -> Path:
    """
    Return the platform's temporary directory as a Path.
    Allows override via JITFLAGS_TMP for tests/CI.
    """
    env = os.environ.get("JITFLAGS_TMP")
    return Path(env) if env else Path(tempfile.gettempdir())
