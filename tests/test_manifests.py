"""Tests for reading and editing the package-list folder."""

import logging

import pytest
import yaml

from novarch.manifests import (
    MANUAL_MANIFEST,
    FolderUnreadable,
    ManifestError,
    load_desired,
    manifest_files,
    record_manual,
    strip_from_manifests,
)

from .conftest import write_yaml


def test_union_across_files_collapses_duplicates(folder):
    write_yaml(folder / "base.yaml", ["vim", "git"])
    write_yaml(folder / "dev.yml", ["git", "python"])
    assert load_desired(str(folder)) == {"vim", "git", "python"}


def test_only_immediate_yaml_files_are_read(folder):
    write_yaml(folder / "base.yaml", ["vim"])
    write_yaml(folder / "notes.txt", ["not-a-package"])
    nested = folder / "nested"
    nested.mkdir()
    write_yaml(nested / "deep.yaml", ["deep"])
    assert load_desired(str(folder)) == {"vim"}


def test_empty_file_is_empty_list(folder):
    (folder / "empty.yaml").write_text("", encoding="utf-8")
    write_yaml(folder / "base.yaml", ["vim"])
    assert load_desired(str(folder)) == {"vim"}


def test_missing_folder_is_unreadable(tmp_path):
    with pytest.raises(FolderUnreadable):
        load_desired(str(tmp_path / "nope"))


def test_file_instead_of_folder_is_unreadable(tmp_path):
    f = tmp_path / "file.yaml"
    f.write_text("[]", encoding="utf-8")
    with pytest.raises(FolderUnreadable):
        load_desired(str(f))


def test_malformed_file_is_skipped_with_warning(folder, caplog):
    write_yaml(folder / "good.yaml", ["vim"])
    (folder / "bad.yaml").write_text("[vim, git\n", encoding="utf-8")
    write_yaml(folder / "mapping.yaml", {"packages": ["htop"]})

    with caplog.at_level(logging.WARNING, logger="novarch.manifests"):
        desired = load_desired(str(folder))

    assert desired == {"vim"}
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "bad.yaml" in messages
    assert "mapping.yaml" in messages


def test_malformed_file_is_fatal_in_strict_mode(folder):
    write_yaml(folder / "good.yaml", ["vim"])
    write_yaml(folder / "numbers.yaml", ["vim", 42])
    with pytest.raises(ManifestError):
        load_desired(str(folder), strict=True)


def test_manifest_files_sorted(folder):
    for name in ("b.yaml", "a.yml", "c.yaml"):
        write_yaml(folder / name, [])
    assert [p.name for p in manifest_files(str(folder))] == ["a.yml", "b.yaml", "c.yaml"]


def test_record_manual_creates_and_appends(folder):
    assert record_manual(str(folder), ["neovim", "ripgrep"]) == ["neovim", "ripgrep"]
    assert record_manual(str(folder), ["ripgrep", "fd"]) == ["fd"]
    data = yaml.safe_load((folder / MANUAL_MANIFEST).read_text(encoding="utf-8"))
    assert data == ["neovim", "ripgrep", "fd"]


def test_strip_updates_and_deletes(folder):
    write_yaml(folder / "base.yaml", ["vim", "htop", "git"])
    write_yaml(folder / "monitoring.yaml", ["htop"])
    write_yaml(folder / "untouched.yaml", ["zsh"])

    edit = strip_from_manifests(str(folder), ["htop"])

    assert [p.name for p in edit.updated] == ["base.yaml"]
    assert [p.name for p in edit.deleted] == ["monitoring.yaml"]
    assert not (folder / "monitoring.yaml").exists()
    assert yaml.safe_load((folder / "base.yaml").read_text(encoding="utf-8")) == ["vim", "git"]
    assert yaml.safe_load((folder / "untouched.yaml").read_text(encoding="utf-8")) == ["zsh"]
    assert load_desired(str(folder)) == {"vim", "git", "zsh"}


def test_strip_skips_malformed_files(folder):
    (folder / "bad.yaml").write_text("{not: [closed\n", encoding="utf-8")
    write_yaml(folder / "base.yaml", ["htop"])
    edit = strip_from_manifests(str(folder), ["htop"])
    assert [p.name for p in edit.skipped] == ["bad.yaml"]
    assert [p.name for p in edit.deleted] == ["base.yaml"]
