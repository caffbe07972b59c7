import json

from typer.testing import CliRunner

from talentflow.cli.app import app

runner = CliRunner()


def _invoke(*args: str) -> dict | list:
    result = runner.invoke(app, list(args))
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_submit_assign_and_transition() -> None:
    _invoke("assignment", "set", "--job-id", "7", "--recruiter-id", "11", "--specialist-id", "22")
    submitted = _invoke(
        "app", "submit", "--job-id", "7", "--name", "Ana Gomez", "--email", "ana@example.com",
        "--candidate-user-id", "44",
    )
    assert submitted["status"] == "pending"

    moved = _invoke(
        "app", "transition", str(submitted["id"]), "--to", "reviewing", "--role", "recruiter", "--user-id", "11"
    )
    assert moved["previous_status"] == "pending"
    assert moved["status"] == "reviewing"

    history = _invoke("app", "history", str(submitted["id"]))
    assert [entry["to_status"] for entry in history] == ["reviewing"]


def test_denied_transition_exits_with_error() -> None:
    submitted = _invoke("app", "submit", "--job-id", "8", "--name", "Luis", "--email", "luis@example.com")
    result = runner.invoke(
        app,
        ["app", "transition", str(submitted["id"]), "--to", "accepted", "--role", "admin", "--user-id", "1"],
    )
    assert result.exit_code == 1
    assert "TRANSITION_DENIED" in result.output


def test_candidate_transition_output_is_relabelled() -> None:
    _invoke("assignment", "set", "--job-id", "9", "--recruiter-id", "11")
    submitted = _invoke(
        "app", "submit", "--job-id", "9", "--name", "Eva", "--email", "eva@example.com",
        "--candidate-user-id", "45",
    )

    same = _invoke(
        "app", "transition", str(submitted["id"]), "--to", "pending", "--role", "candidate", "--user-id", "45"
    )
    assert same["is_noop"]
    assert same["previous_status"] == "En revisión"
    assert same["status"] == "En revisión"
