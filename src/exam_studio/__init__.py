"""Top-level package for Exam Studio.

Provides subpackages:
- exam_studio.core – immutable exam draft models, validation, serialization
- exam_studio.api – HTTP client and domain services for the admin backend
- exam_studio.editor – editor session, submission plan/executor, autosave
- exam_studio.storage – locked JSON files for local state
- exam_studio.gui – PySide6 exam editor
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text()
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.3.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    # Fallback to importlib.metadata for installed package
    try:
        from importlib.metadata import version as pkg_version
        return pkg_version("exam-studio")
    except Exception:
        return "0.0.0"

__version__ = _get_version()
__all__: list[str] = ["__version__"]
