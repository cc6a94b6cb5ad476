"""Locating the Java runtime and the bundled PlantUML jar."""
from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional

from plantuml_gateway.errors import ConfigurationError


RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"
DEFAULT_JAR_NAME = "plantuml.jar"


def ensure_dir(path: str) -> Path:
    """Ensure directory exists and return Path."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def is_readable_file(path: str | Path) -> bool:
    p = Path(path)
    return p.is_file() and os.access(p, os.R_OK)


def _java_executable_name() -> str:
    return "java.exe" if sys.platform == "win32" else "java"


def find_java(
    configured_path: str = "",
    environ: Optional[Mapping[str, str]] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> Optional[str]:
    """Resolve the java executable.

    Order: explicit configured path, then `$JAVA_HOME/bin/java`, then PATH.
    Returns None when nothing usable is found.
    """
    environ = os.environ if environ is None else environ

    if configured_path and is_readable_file(configured_path):
        return configured_path

    java_home = environ.get("JAVA_HOME")
    if java_home:
        candidate = Path(java_home) / "bin" / _java_executable_name()
        if is_readable_file(candidate):
            return str(candidate)

    return which("java")


def require_java(configured_path: str = "", environ: Optional[Mapping[str, str]] = None, which=shutil.which) -> str:
    java = find_java(configured_path, environ=environ, which=which)
    if not java:
        raise ConfigurationError(
            "Java not found. Please install Java 11 or later, or set PLANTUML_GATEWAY_JAVA_PATH."
        )
    return java


def default_jar_path() -> Path:
    return RESOURCES_DIR / DEFAULT_JAR_NAME


def require_jar(jar_path: str | Path | None = None) -> str:
    path = Path(jar_path) if jar_path else default_jar_path()
    if not is_readable_file(path):
        raise ConfigurationError(
            f"PlantUML JAR not found at {path}. Please ensure the gateway is properly installed."
        )
    return str(path)
