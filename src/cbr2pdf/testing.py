"""Small helpers exported for tests.

These convenience functions are intended for use by the test suite only.
"""
from __future__ import annotations

import io
import subprocess
import sys
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from PIL import Image

# archive member name -> (width, height) for a real JPEG, or raw bytes
PageSpec = Dict[str, Union[Tuple[int, int], bytes]]


def run_cbr2pdf(args, env: Optional[dict] = None):
    script = Path(__file__).resolve().parent / "main.py"
    cmd = [sys.executable, str(script)] + [str(a) for a in args]
    return subprocess.run(cmd, capture_output=True, text=True, env=env)


def jpeg_bytes(width: int, height: int, color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG")
    return buf.getvalue()


def make_cbz(path: Path, name: str, pages: PageSpec, comicinfo: Optional[str] = None) -> Path:
    p = path / name
    with zipfile.ZipFile(p, "w") as z:
        if comicinfo is not None:
            z.writestr("ComicInfo.xml", comicinfo)
        for member, content in pages.items():
            data = content if isinstance(content, bytes) else jpeg_bytes(*content)
            z.writestr(member, data)
    return p


def make_cbt(path: Path, name: str, pages: PageSpec) -> Path:
    p = path / name
    with tarfile.open(p, "w") as t:
        for member, content in pages.items():
            data = content if isinstance(content, bytes) else jpeg_bytes(*content)
            info = tarfile.TarInfo(member)
            info.size = len(data)
            t.addfile(info, io.BytesIO(data))
    return p
