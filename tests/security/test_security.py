import os

import pytest
from conftest import FakeRunner
from rci.RUNNERS.compose_runner import ComposeRunner
from rci.MODELS.setup_result import SetupResult


@pytest.mark.skipif(os.name == 'nt', reason="relies on POSIX echo")
def test_command_injection_attempt(tmp_path):
    """
    Container names and commands are handed to the tool as argv, never to a shell.
    If shell=True were used, ';' would run the second command.
    """
    injected_file = tmp_path / "injected.txt"
    runner = ComposeRunner(["echo"], project_dir=str(tmp_path), docker_cmd="echo")

    runner.exec_in("roo-ollama; touch injected.txt", ["ollama", "pull", "x", ";", "touch", "injected.txt"])
    runner.running_containers()

    assert not injected_file.exists(), "Command injection successful! Security vulnerability found."

def test_model_name_is_a_single_argument(make_orchestrator):
    """
    A hostile EMBEDDING_MODEL reaches docker exec as one literal argument.
    """
    runner = FakeRunner()
    model = "nomic-embed-text; rm -rf / && $(reboot)"
    orchestrator = make_orchestrator(runner=runner, environ={"EMBEDDING_MODEL": model})

    assert orchestrator.pull_model_only() == SetupResult.SUCCESS
    assert runner.calls == [("exec", "roo-ollama", ("ollama", "pull", model))]

def test_env_file_cannot_overwrite_existing(tmp_path, make_orchestrator):
    """
    A symlinked .env pointing elsewhere is treated as existing and left alone.
    """
    target = tmp_path / "elsewhere.txt"
    target.write_text("keep me\n")
    try:
        os.symlink(target, tmp_path / ".env")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not available")
    (tmp_path / ".env.example").write_text("EMBEDDING_MODEL=nomic-embed-text\n")

    make_orchestrator().run_full_setup()

    assert target.read_text() == "keep me\n"

def test_path_traversal_parse():
    """
    Missing manifests raise instead of silently yielding an empty stack.
    """
    from rci.PARSERS.compose_parser import ComposeParser
    with pytest.raises(FileNotFoundError):
        ComposeParser(context={}).parse("non_existent_file_12345.yml")
