import os
from pathlib import Path

import pytest

from cbr2pdf.testing import make_cbt as _make_cbt
from cbr2pdf.testing import make_cbz as _make_cbz
from cbr2pdf.testing import run_cbr2pdf as _run_cbr2pdf


class FakeImage:
    """Stands in for a decoded image: only the size matters to the pipeline."""

    def __init__(self, width, height):
        self.width = width
        self.height = height


class SizeCodec:
    """Decodes files containing "WxH" text; anything else is corrupt."""

    media_type = "image/jpeg"

    def __init__(self):
        self.decoded = []

    def decode(self, path):
        self.decoded.append(Path(path).name)
        w, h = Path(path).read_text().split("x")
        return FakeImage(int(w), int(h))

    def encode(self, image):
        return f"{image.width}x{image.height}".encode()


class SizeResampler:
    def resample(self, image, size):
        return FakeImage(*size)


class DictExtractor:
    """Writes a dict of {member: bytes} into the scratch directory."""

    def __init__(self, files):
        self.files = files
        self.calls = []

    def extract(self, archive, directory):
        self.calls.append((Path(archive), Path(directory)))
        for name, data in self.files.items():
            p = Path(directory) / name
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)
        return directory


class RecordingDocument:
    def __init__(self, metadata):
        self.metadata = metadata
        self.pages = []
        self.destination = None

    def append_page(self, page):
        self.pages.append(page)

    def finalize(self, destination):
        Path(destination).write_bytes(b"%fake%")
        self.destination = Path(destination)
        return destination


class RecordingWriter:
    def __init__(self):
        self.documents = []

    def create(self, metadata=None):
        doc = RecordingDocument(metadata)
        self.documents.append(doc)
        return doc


@pytest.fixture
def make_cbz():
    return _make_cbz


@pytest.fixture
def make_cbt():
    return _make_cbt


@pytest.fixture
def run_cbr2pdf():
    def _run(args, **env_overrides):
        env = os.environ.copy()
        env.pop("WIDTH", None)
        env.pop("HEIGHT", None)
        env.update(env_overrides)
        return _run_cbr2pdf(args, env=env)

    return _run


@pytest.fixture
def fakes():
    """Bundle of fake collaborators for the conversion loop."""

    class _Fakes:
        codec = SizeCodec()
        resampler = SizeResampler()
        writer = RecordingWriter()

        @staticmethod
        def extractor(files):
            return DictExtractor(files)

    return _Fakes()


@pytest.fixture
def scratch(tmp_path):
    d = tmp_path / "scratch"
    d.mkdir()
    return d
