#!/usr/bin/env python3
"""Set up a local lumen-assistant checkout.

Creates .venv, installs the package, seeds config.yaml and .env from their
examples, creates the data directory named by config.yaml and finally runs
``lumen-assistant config-check`` against the result.

Usage:
    python install.py               # Production install
    python install.py --dev         # Editable install with the test extra
    python install.py --skip-check  # Do not run config-check afterwards
"""

from __future__ import annotations

import argparse
import platform
import re
import shutil
import subprocess
import sys
from pathlib import Path

MIN_PYTHON = (3, 11)
CONFIG_SEEDS = (("config.example.yaml", "config.yaml"), (".env.example", ".env"))
# The model backend keys; at least one must be set before serving
BACKEND_KEYS = ("GOOGLE_API_KEY", "ANTHROPIC_API_KEY")
PLACEHOLDER_SECRET = "change-me"

_DATA_DIR_LINE = re.compile(r"^data_dir:\s*(?P<value>\S.*?)\s*$", re.MULTILINE)


def venv_python(venv_dir: Path) -> Path:
    if platform.system() == "Windows":
        return venv_dir / "Scripts" / "python.exe"
    return venv_dir / "bin" / "python"


def create_venv(venv_dir: Path) -> Path:
    if venv_dir.is_dir():
        print("Virtual environment already exists.")
    else:
        print("Creating virtual environment...")
        subprocess.check_call([sys.executable, "-m", "venv", str(venv_dir)])
    return venv_python(venv_dir)


def install_package(python: Path, project_dir: Path, dev: bool) -> None:
    subprocess.check_call([str(python), "-m", "pip", "install", "--upgrade", "pip"])
    target = ["-e", ".[test]"] if dev else ["."]
    print(f"Installing lumen-assistant{' in development mode' if dev else ''}...")
    subprocess.check_call([str(python), "-m", "pip", "install", *target], cwd=project_dir)


def seed_config_files(project_dir: Path) -> list[str]:
    """Copy each example file to its live name unless the live file exists.

    Returns the names of the files that were created.
    """
    created = []
    for example, live in CONFIG_SEEDS:
        source, target = project_dir / example, project_dir / live
        if target.exists():
            print(f"{live} already exists, skipping.")
            continue
        if not source.exists():
            print(f"{example} not found, cannot create {live}.")
            continue
        shutil.copyfile(source, target)
        created.append(live)
        print(f"Created {live} from {example}")
    return created


def resolve_data_dir(project_dir: Path) -> Path:
    """Read ``data_dir`` from config.yaml, falling back to ./data.

    Values that reference environment variables cannot be resolved before
    the package is installed, so they fall back too.
    """
    config_file = project_dir / "config.yaml"
    value = "./data"
    if config_file.exists():
        match = _DATA_DIR_LINE.search(config_file.read_text(encoding="utf-8"))
        if match and "${" not in match.group("value"):
            value = match.group("value").strip("'\"")
    data_dir = Path(value)
    return data_dir if data_dir.is_absolute() else project_dir / data_dir


def ensure_data_dir(project_dir: Path) -> Path:
    data_dir = resolve_data_dir(project_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / ".gitkeep").touch(exist_ok=True)
    return data_dir


def pending_env_settings(env_file: Path) -> list[str]:
    """List the .env settings that still need a real value."""
    if not env_file.exists():
        return ["JWT_SECRET", *BACKEND_KEYS]

    values = {}
    for line in env_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("'\"")

    pending = []
    if values.get("JWT_SECRET", PLACEHOLDER_SECRET) in ("", PLACEHOLDER_SECRET):
        pending.append("JWT_SECRET")
    if not any(values.get(key) for key in BACKEND_KEYS):
        pending.append(" or ".join(BACKEND_KEYS))
    return pending


def run_config_check(python: Path, project_dir: Path) -> bool:
    print("Checking configuration...")
    result = subprocess.run([str(python), "-m", "lumen_assistant", "config-check"], cwd=project_dir)
    return result.returncode == 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Install lumen-assistant into a local virtual environment")
    parser.add_argument("--dev", action="store_true", help="Editable install including test tools")
    parser.add_argument("--skip-check", action="store_true", help="Do not run config-check after installing")
    args = parser.parse_args(argv)

    if sys.version_info < MIN_PYTHON:
        sys.exit(
            f"Error: Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]}+ is required. "
            f"You have {sys.version_info.major}.{sys.version_info.minor}."
        )

    project_dir = Path(__file__).resolve().parent
    python = create_venv(project_dir / ".venv")
    install_package(python, project_dir, args.dev)
    seed_config_files(project_dir)
    data_dir = ensure_data_dir(project_dir)
    print(f"Data directory: {data_dir}")

    config_ok = args.skip_check or run_config_check(python, project_dir)
    pending = pending_env_settings(project_dir / ".env")

    print()
    if pending:
        print("Set these in .env before serving:")
        for setting in pending:
            print(f"  {setting}")
    if not config_ok:
        print("config-check failed; fix config.yaml and rerun: python -m lumen_assistant config-check")
    activate = r".\.venv\Scripts\activate" if platform.system() == "Windows" else "source .venv/bin/activate"
    print(f"Then start the server: {activate} && python -m lumen_assistant serve")
    if not config_ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
