import pytest

from cbr2pdf.config import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    ConversionConfig,
    DocumentMetadata,
    load_metadata,
    resolve_resolution,
)
from cbr2pdf.exceptions import ConfigError
from cbr2pdf.types_ import Resolution


def test_defaults_when_unset():
    assert resolve_resolution({}) == Resolution(DEFAULT_WIDTH, DEFAULT_HEIGHT)
    assert resolve_resolution({}) == (1072, 1448)


def test_overrides_are_independent():
    assert resolve_resolution({"WIDTH": "758"}) == (758, 1448)
    assert resolve_resolution({"HEIGHT": "1024"}) == (1072, 1024)


def test_zero_and_large_values_accepted():
    assert resolve_resolution({"WIDTH": "0", "HEIGHT": "99999999"}) == (0, 99999999)


@pytest.mark.parametrize("value", ["abc", "", "-1", "+5", " 12", "1_000", "1.5", "0x10"])
def test_invalid_values_raise(value):
    with pytest.raises(ConfigError) as exc:
        resolve_resolution({"WIDTH": value})
    assert "WIDTH has invalid value" in str(exc.value)


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("WIDTH", "600")
    monkeypatch.setenv("HEIGHT", "800")
    assert resolve_resolution() == (600, 800)


def test_config_rejects_unknown_policies():
    with pytest.raises(ConfigError):
        ConversionConfig(sort="random")
    with pytest.raises(ConfigError):
        ConversionConfig(on_error="retry")


def test_load_metadata(tmp_path):
    p = tmp_path / "meta.yaml"
    p.write_text(
        "title: Akira v01\n"
        "authors: Katsuhiro Otomo\n"
        "series: Akira\n"
        "series_index: 1\n"
        "language: ja\n"
        "colour: yes\n",
        encoding="utf-8",
    )
    meta = load_metadata(p)
    assert meta.title == "Akira v01"
    assert meta.authors == ["Katsuhiro Otomo"]
    assert meta.series == "Akira"
    assert meta.series_index == 1.0
    assert meta.language == "ja"
    assert meta.publisher is None


def test_load_metadata_empty_file(tmp_path):
    p = tmp_path / "meta.yaml"
    p.write_text("")
    assert load_metadata(p) == DocumentMetadata()


@pytest.mark.parametrize(
    "content",
    ["- a\n- b\n", "title: [unclosed\n", "series_index: abc\n", "authors: 42\n", "authors: {name: x}\n"],
)
def test_load_metadata_invalid(tmp_path, content):
    p = tmp_path / "meta.yaml"
    p.write_text(content)
    with pytest.raises(ConfigError):
        load_metadata(p)


def test_load_metadata_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_metadata(tmp_path / "nope.yaml")


def test_merged_with_keeps_explicit_values():
    explicit = DocumentMetadata(title="Mine")
    fallback = DocumentMetadata(title="Theirs", authors=["A"], series="S")
    merged = explicit.merged_with(fallback)
    assert merged.title == "Mine"
    assert merged.authors == ["A"]
    assert merged.series == "S"


def test_merged_with_keeps_falsy_explicit_values():
    explicit = DocumentMetadata(title="", series_index=0.0)
    fallback = DocumentMetadata(title="Theirs", series_index=7.0, language="en")
    merged = explicit.merged_with(fallback)
    assert merged.title == ""
    assert merged.series_index == 0.0
    assert merged.language == "en"
