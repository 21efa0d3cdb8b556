import json

import pytest

import run
from trampoline_regex import DONE, Evaluate, Finished, Resume, literal


def _run(argv):
    with pytest.raises(SystemExit) as info:
        run.main(argv)
    return info.value.code


def test_no_command_prints_help(capsys):
    assert _run([]) == 1
    assert "usage" in capsys.readouterr().out


class TestTestCommand:
    def test_default_cases_pass(self, capsys):
        assert _run(["test"]) == 0
        out = capsys.readouterr().out
        assert "### scala: Scala(la)* ###" in out
        assert "PASSED" in out

    def test_single_case_verbose(self, capsys):
        assert _run(["test", "-n", "scala", "-v"]) == 0
        out = capsys.readouterr().out
        assert "[OK] 'Scalaland' -> False" in out
        assert "literal_exact" not in out

    def test_list(self, capsys):
        assert _run(["test", "--list"]) == 0
        assert "- scala: 5 input(s), pattern: Scala(la)*" in capsys.readouterr().out

    def test_unknown_name(self, capsys):
        assert _run(["test", "-n", "nope"]) == 1
        assert "No case named 'nope'" in capsys.readouterr().err

    def test_failing_case(self, tmp_path, capsys):
        path = tmp_path / "cases.yaml"
        path.write_text("- name: wrong\n  expression: ab\n  cases: {ab: false}\n", encoding="utf-8")
        assert _run(["test", "-c", str(path)]) == 1
        captured = capsys.readouterr()
        assert "FAILED: 1 of 1 input(s)" in captured.out
        assert "'ab': expected False, got True" in captured.err

    def test_faithful_mode_hits_step_limit(self, tmp_path, capsys):
        path = tmp_path / "cases.yaml"
        path.write_text('- name: loop\n  expression: {repeat: ""}\n  cases: {"": true}\n',
                        encoding="utf-8")
        assert _run(["test", "-c", str(path)]) == 0
        assert _run(["test", "-c", str(path), "--faithful", "--max-steps", "100"]) == 1
        assert "did not finish within 100 steps" in capsys.readouterr().err

    def test_bad_config(self, tmp_path, capsys):
        path = tmp_path / "cases.yaml"
        path.write_text("- expression: {nope: a}\n", encoding="utf-8")
        assert _run(["test", "-c", str(path)]) == 1
        assert "unknown expression kind 'nope'" in capsys.readouterr().err


class TestMatchCommand:
    def test_match_and_mismatch(self, capsys):
        code = _run(["match", "-e", "{concat: [Sca, la, {repeat: la}]}",
                     "Scalala", "Scalaland", "Sca"])
        assert code == 1
        out = capsys.readouterr().out
        assert "Pattern: Scala(la)*" in out
        assert "MATCH     'Scalala'" in out
        assert "NO MATCH  'Scalaland' (stopped at 7)" in out
        assert "NO MATCH  'Sca' (no match)" in out

    def test_all_match(self, capsys):
        assert _run(["match", "-e", "{repeat: ab}", "", "abab"]) == 0

    def test_trace(self, capsys):
        assert _run(["match", "--trace", "-e", "{alternate: [a, b]}", "b"]) == 0
        err = capsys.readouterr().err
        assert "Evaluate a|b @0 -> Done" in err
        assert "Resume None -> AfterAlternate" in err
        assert "Resume 1 -> Done" in err

    def test_step_limit(self, capsys):
        code = _run(["match", "--faithful", "--max-steps", "50", "-e", '{repeat: ""}', ""])
        assert code == 2
        assert "did not finish within 50 steps" in capsys.readouterr().err

    def test_invalid_expression(self, capsys):
        assert _run(["match", "-e", "{concat: [a", "a"]) == 1
        assert "Invalid YAML expression" in capsys.readouterr().err


class TestBenchCommand:
    def test_small_bench_writes_json(self, tmp_path, capsys):
        output = tmp_path / "results" / "bench.json"
        code = _run(["bench", "--depth", "3000", "--repetitions", "3000",
                     "--iterations", "1", "-o", str(output)])
        assert code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["depth"] == 3000
        names = [r["name"] for r in data["results"]]
        assert names == ["left_concat", "right_concat", "alternate_chain", "long_repeat"]
        assert all(r["matched"] for r in data["results"])
        assert "Python recursion limit" in capsys.readouterr().out

    def test_invalid_depth(self, capsys):
        assert _run(["bench", "--depth", "0"]) == 1
        assert "--depth and --iterations must be at least 1" in capsys.readouterr().err

    @pytest.mark.parametrize("iterations", ["0", "-3"])
    def test_invalid_iterations(self, iterations, capsys):
        code = _run(["bench", "--depth", "3", "--repetitions", "2", "--iterations", iterations])
        assert code == 1
        assert "--iterations must be at least 1" in capsys.readouterr().err


def test_format_call():
    a = literal("a")
    assert run.format_call(Evaluate(a, 0, DONE)) == "Evaluate a @0 -> Done"
    assert run.format_call(Resume(None, DONE)) == "Resume None -> Done"
    assert run.format_call(Finished(3)) == "Finished 3"
