import json
import sys
import textwrap

import pytest

from engagehub.worker.executor import TIMEOUT_EXIT_CODE, SubprocessExecutor


@pytest.fixture
def script(tmp_path):
    def _write(body: str) -> str:
        path = tmp_path / "predict.py"
        path.write_text(textwrap.dedent(body))
        return str(path)

    return _write


def test_input_is_passed_as_single_json_argument(script):
    path = script(
        """
        import json, sys
        payload = json.loads(sys.argv[1])
        print(json.dumps({"score": 0.5, "echo": payload, "argc": len(sys.argv)}))
        """
    )
    executor = SubprocessExecutor(python=sys.executable, script=path, timeout=30)

    outcome = executor.execute({"title": "hello world", "topics": ["a", "b"]})

    assert outcome.exit_code == 0
    assert outcome.ok
    data = json.loads(outcome.stdout)
    assert data["echo"] == {"title": "hello world", "topics": ["a", "b"]}
    assert data["argc"] == 2


def test_non_zero_exit_and_stderr_are_reported(script):
    path = script(
        """
        import sys
        sys.stderr.write("model not loaded")
        sys.exit(3)
        """
    )
    outcome = SubprocessExecutor(python=sys.executable, script=path, timeout=30).execute({})

    assert outcome.exit_code == 3
    assert not outcome.ok
    assert "model not loaded" in outcome.stderr


def test_missing_interpreter_raises(tmp_path):
    executor = SubprocessExecutor(python=str(tmp_path / "no-such-python"), script="x.py", timeout=5)

    with pytest.raises(OSError):
        executor.execute({})


def test_timeout_maps_to_exit_code(script):
    path = script(
        """
        import time
        time.sleep(10)
        """
    )
    outcome = SubprocessExecutor(python=sys.executable, script=path, timeout=0.5).execute({})

    assert outcome.exit_code == TIMEOUT_EXIT_CODE
    assert "timed out" in outcome.stderr


def test_zero_timeout_means_no_limit():
    assert SubprocessExecutor(python="python3", script="x.py", timeout=0).timeout is None


def test_undecodable_stdout_is_replaced_not_raised(script):
    path = script(
        """
        import sys
        sys.stdout.buffer.write(b"score\\xff\\xfe")
        sys.stderr.buffer.write(b"warn\\xff")
        """
    )
    outcome = SubprocessExecutor(python=sys.executable, script=path, timeout=30).execute({})

    assert outcome.exit_code == 0
    assert outcome.stdout == "score\ufffd\ufffd"
    assert outcome.stderr == "warn\ufffd"
