"""Tests for the command line interface."""

import pytest

from olastark.__main__ import build_parser, main


class TestCheck:

    def test_example(self, capsys) -> None:
        assert main(["check", "--example", "memory"]) == 0
        out = capsys.readouterr().out
        assert "Constraints and cross-table lookups hold." in out
        assert "CPU" in out

    def test_assembly_file(self, tmp_path, capsys) -> None:
        path = tmp_path / "prog.asm"
        path.write_text("mov r0,3\nmul r1,r0,r0\nend\n")
        assert main(["check", str(path)]) == 0
        assert "hold" in capsys.readouterr().out

    def test_bad_mnemonic(self, tmp_path, capsys) -> None:
        path = tmp_path / "bad.asm"
        path.write_text("frobnicate r0\nend\n")
        assert main(["check", str(path)]) == 2
        assert "unknown mnemonic" in capsys.readouterr().err

    @pytest.mark.parametrize("command", ["check", "prove"])
    def test_missing_program_file(self, tmp_path, capsys, command: str) -> None:
        assert main([command, str(tmp_path / "missing.asm")]) == 2
        assert "FileNotFoundError" in capsys.readouterr().err

    def test_missing_proof_file(self, tmp_path, capsys) -> None:
        assert main(["verify", str(tmp_path / "missing.json")]) == 2
        assert "FileNotFoundError" in capsys.readouterr().err

    def test_step_limit(self, capsys) -> None:
        assert main(["check", "--example", "fibonacci", "--max-steps", "3"]) == 2
        assert "ExecutionError" in capsys.readouterr().err


class TestParser:

    def test_program_or_example_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["prove"])

    def test_program_and_example_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["check", "prog.asm", "--example", "memory"])

    def test_unknown_example(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["check", "--example", "nope"])


@pytest.mark.slow
class TestProveVerify:

    @pytest.fixture(scope="class")
    def proof_path(self, tmp_path_factory):
        path = tmp_path_factory.mktemp("proofs") / "add_mul.json"
        assert main(["prove", "--example", "add_mul", "--fast", "-o", str(path)]) == 0
        return path

    def test_verify(self, proof_path, capsys) -> None:
        assert main(["verify", str(proof_path), "--example", "add_mul", "--fast"]) == 0
        assert capsys.readouterr().out.strip() == "OK"

    def test_verify_without_expectation(self, proof_path, capsys) -> None:
        assert main(["verify", str(proof_path), "--fast"]) == 0

    def test_other_program_rejected(self, proof_path, capsys) -> None:
        assert main(["verify", str(proof_path), "--example", "memory", "--fast"]) == 1
        assert "REJECTED (PublicValuesMismatchError)" in capsys.readouterr().out

    def test_other_config_rejected(self, proof_path, capsys) -> None:
        assert main(["verify", str(proof_path)]) == 1
        assert "REJECTED" in capsys.readouterr().out

    def test_malformed_file(self, tmp_path, capsys) -> None:
        path = tmp_path / "broken.json"
        path.write_text("not json")
        assert main(["verify", str(path)]) == 2
        assert "MalformedProofError" in capsys.readouterr().err
