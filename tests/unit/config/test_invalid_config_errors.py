from __future__ import annotations

from pathlib import Path

import pytest

from manifest_sync.config import CliOverrides, load_effective_config, split_comma_list


def test_invalid_section_type_raises_value_error(tmp_path: Path) -> None:
    (tmp_path / "manifest_sync.toml").write_text('index = "not-a-table"\n', encoding="utf-8")

    with pytest.raises(ValueError, match="section 'index'"):
        load_effective_config(tmp_path, environ={})


def test_extension_without_leading_dot_raises_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="FILE_EXTENSIONS_TO_PROCESS"):
        load_effective_config(tmp_path, environ={"FILE_EXTENSIONS_TO_PROCESS": "js,.ts"})


def test_ignore_entry_with_separator_raises_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="IGNORE_LIST"):
        load_effective_config(tmp_path, environ={"IGNORE_LIST": "src/vendor"})


def test_non_positive_workers_raise_value_error(tmp_path: Path) -> None:
    (tmp_path / "manifest_sync.toml").write_text("[index]\nworkers = 0\n", encoding="utf-8")

    with pytest.raises(ValueError, match="index.workers"):
        load_effective_config(tmp_path, environ={})


def test_unknown_tokenizer_override_raises_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="overrides.tokenizer"):
        load_effective_config(tmp_path, overrides=CliOverrides(tokenizer="words"), environ={})


def test_split_comma_list_drops_blank_items() -> None:
    assert split_comma_list(" .js, ,.ts ,") == (".js", ".ts")
    assert split_comma_list("") == ()


def test_unknown_encoding_raises_value_error(tmp_path: Path) -> None:
    (tmp_path / "manifest_sync.toml").write_text(
        '[tokens]\nencoding = "bogus"\n', encoding="utf-8"
    )

    with pytest.raises(ValueError, match="tokens.encoding"):
        load_effective_config(tmp_path, environ={})
