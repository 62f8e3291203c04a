"""Tests for the command line interface."""

from __future__ import annotations

from pathlib import Path

import pytest

from treefs.__main__ import build_parser, main


class TestCopyCommand:
    def test_copy(self, src_tree: Path, tmp_path: Path, capsys):
        code = main(["cp", str(src_tree), str(tmp_path / "dst")])

        assert code == 0
        assert capsys.readouterr().out.strip() == "copied 3 entries"
        assert (tmp_path / "dst" / "sub" / "y.txt").exists()

    def test_excl_failure(self, src_tree: Path, capsys):
        code = main(["cp", "--excl", str(src_tree), str(src_tree)])

        assert code == 1
        err = capsys.readouterr().err
        assert "treefs: EEXIST" in err
        assert str(src_tree) in err

    def test_clone_options_are_exclusive(self, src_tree: Path, tmp_path: Path):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["cp", "--no-clone", "--force-clone", str(src_tree), str(tmp_path)])

    def test_no_clone(self, src_tree: Path, tmp_path: Path):
        assert main(["cp", "--no-clone", str(src_tree), str(tmp_path / "dst")]) == 0
        assert (tmp_path / "dst" / "x.txt").read_text() == "hello x\n"


class TestOtherCommands:
    def test_remove(self, src_tree: Path, tmp_path: Path, capsys):
        code = main(["rm", str(src_tree), str(tmp_path / "missing")])

        assert code == 0
        assert capsys.readouterr().out.strip() == "removed 4 entries"

    def test_mkdirp_with_mode(self, tmp_path: Path):
        target = tmp_path / "a" / "b"

        assert main(["mkdirp", "--mode", "700", str(target)]) == 0
        assert target.stat().st_mode & 0o777 == 0o700

    def test_move(self, src_tree: Path, tmp_path: Path):
        assert main(["mv", str(src_tree), str(tmp_path / "moved")]) == 0
        assert (tmp_path / "moved" / "x.txt").exists()

    def test_du(self, src_tree: Path, capsys):
        assert main(["du", str(src_tree)]) == 0
        assert capsys.readouterr().out.strip() == "16"

    def test_ls(self, src_tree: Path, capsys):
        assert main(["ls", str(src_tree)]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[-1] for line in lines] == ["sub/", "sub/y.txt", "x.txt"]
        assert lines[0].startswith("directory")

    def test_ls_post_order(self, src_tree: Path, capsys):
        assert main(["ls", "--post", str(src_tree)]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[-1] for line in lines] == ["sub/y.txt", "sub/", "x.txt"]

    def test_missing_path_fails(self, tmp_path: Path, capsys):
        assert main(["mv", str(tmp_path / "nope"), str(tmp_path / "dst")]) == 1
        assert "ENOENT" in capsys.readouterr().err


class TestApplyCommand:
    def test_apply(self, src_tree: Path, tmp_path: Path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        plan = tmp_path / "plan.yaml"
        plan.write_text("- type: copy\n  from: src\n  to: dst\n- type: remove\n  path: src\n")

        assert main(["apply", str(plan)]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith("ok")
        assert "(3)" in out[0]
        assert "(4)" in out[1]
        assert not src_tree.exists()

    def test_apply_reports_failures(self, tmp_path: Path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        plan = tmp_path / "plan.yaml"
        plan.write_text("- type: move\n  from: nope\n  to: dst\n- type: mkdirp\n  path: after\n")

        assert main(["apply", "--keep-going", str(plan)]) == 1

        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith("FAILED")
        assert out[1].startswith("ok")
        assert (tmp_path / "after").is_dir()

    def test_apply_invalid_plan(self, tmp_path: Path, capsys):
        plan = tmp_path / "plan.yaml"
        plan.write_text("- type: [unclosed\n")

        assert main(["apply", str(plan)]) == 2
        assert "cannot load plan" in capsys.readouterr().err

    def test_apply_missing_plan(self, tmp_path: Path):
        assert main(["apply", str(tmp_path / "missing.yaml")]) == 2
