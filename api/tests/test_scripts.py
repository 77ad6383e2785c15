from __future__ import annotations

import importlib.util
import subprocess
import sys
from pathlib import Path

from app.core.auth import decode_claims_envelope

SCRIPTS_DIR = Path(__file__).resolve().parents[2] / "scripts"


def _run_script(name: str, *args: str) -> str:
    completed = subprocess.run(
        [sys.executable, str(SCRIPTS_DIR / name), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


def _load_script(name: str):
    spec = importlib.util.spec_from_file_location(name.removesuffix(".py"), SCRIPTS_DIR / name)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_bootstrap_schema_emits_course_and_token_tables() -> None:
    output = _run_script("bootstrap_schema.py")

    assert 'create table if not exists "public".courses (' in output
    assert "id uuid primary key" in output
    assert "title text not null check (title <> '')" in output
    assert 'create table if not exists "public".oauth_access_tokens (' in output


def test_bootstrap_schema_can_skip_tokens_and_quotes_inputs() -> None:
    output = _run_script("bootstrap_schema.py", "--schema", 'odd"name', "--without-tokens")

    assert 'create schema if not exists "odd""name";' in output
    assert "oauth_access_tokens" not in output


def test_bootstrap_schema_seeds_client_token() -> None:
    output = _run_script("bootstrap_schema.py", "--seed-client", "o'reilly-app")

    assert "'o''reilly-app'" in output
    assert "now() + interval '1 hour'" in output


def test_mock_identity_claims_decode_into_claims() -> None:
    mock_identity = _load_script("mock_identity_service.py")

    teacher = decode_claims_envelope({"data": mock_identity.claims_for_token("teacher-token", now=1_000)})
    student = decode_claims_envelope({"data": mock_identity.claims_for_token("student-token", now=1_000)})

    assert teacher.role == "teacher"
    assert student.role == "student"
    assert teacher.exp == 1_000 + mock_identity.TOKEN_TTL_SECONDS
    assert mock_identity.claims_for_token("unknown") is None
