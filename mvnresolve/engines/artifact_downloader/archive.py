"""AAR inspection and ``classes.jar`` extraction."""

from __future__ import annotations

import os
import shutil
import uuid
import zipfile
from pathlib import Path

from mvnresolve.exceptions import ArchiveError

CLASSES_JAR = "classes.jar"
_RES_PREFIX = "res/"


def is_aar(path: Path) -> bool:
    return path.suffix.lower() == ".aar"


def has_res_directory(path: Path) -> bool:
    """True when the archive carries Android resources under ``res/``."""
    try:
        with zipfile.ZipFile(path) as zf:
            return any(name.startswith(_RES_PREFIX) for name in zf.namelist())
    except zipfile.BadZipFile as exc:
        raise ArchiveError(str(path), str(exc)) from exc


def extract_classes_jar(aar: Path, dest: Path) -> Path:
    """Copy the AAR's ``classes.jar`` to *dest*, replacing it atomically."""
    try:
        with zipfile.ZipFile(aar) as zf:
            try:
                info = zf.getinfo(CLASSES_JAR)
            except KeyError as exc:
                raise ArchiveError(str(aar), f"no {CLASSES_JAR} entry") from exc

            dest.parent.mkdir(parents=True, exist_ok=True)
            tmp = dest.with_name(f"{dest.name}.{uuid.uuid4().hex[:8]}.part")
            try:
                with zf.open(info) as src, open(tmp, "wb") as out:
                    shutil.copyfileobj(src, out)
                os.replace(tmp, dest)
            finally:
                if tmp.exists():
                    tmp.unlink()
    except zipfile.BadZipFile as exc:
        raise ArchiveError(str(aar), str(exc)) from exc
    return dest
