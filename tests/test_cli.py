from __future__ import annotations

import json

import allure
import pytest
from click.testing import CliRunner

from risk_orchestrator.main import risk_orchestrator
from risk_orchestrator.orchestrator.gateway import MOCK_RESPONSE_TEXT, GatewayError, MockGateway

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Chat and Demo Commands"),
]


class _ClosableMockGateway(MockGateway):
    instances: list[_ClosableMockGateway] = []

    def __init__(self, fail: bool = False) -> None:
        self.closed = False
        self.fail = fail
        _ClosableMockGateway.instances.append(self)

    def send(self, request, *, timeout_seconds: float = 0.0):
        if self.fail:
            raise GatewayError("Backend unreachable", transient=True)
        return super().send(request, timeout_seconds=timeout_seconds)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def closable_gateways(monkeypatch) -> list[_ClosableMockGateway]:
    instances: list[_ClosableMockGateway] = []
    monkeypatch.setattr(_ClosableMockGateway, "instances", instances)
    return instances


def test_chat_prints_merged_envelope() -> None:
    runner = CliRunner()

    result = runner.invoke(
        risk_orchestrator,
        ["chat", "Please analyze image and categorize machinery", "--endpoint", ""],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["jsonrpc"] == "2.0"
    assert payload["id"] == 1
    assert "error" not in payload
    assert payload["result"]["text"] == MOCK_RESPONSE_TEXT
    assert payload["result"]["tools_detected"] == ["analyze_image", "categorize_machinery"]


def test_chat_rejects_blank_text() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["chat", "  "])

    assert result.exit_code != 0
    assert "User text is required" in result.output


def test_chat_rejects_invalid_endpoint() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["chat", "hi", "--endpoint", "ftp://x"])

    assert result.exit_code != 0
    assert "Invalid gateway endpoint" in result.output


def test_demo_prints_execution_and_output() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["demo"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[1].startswith("- [done] LLM 'Analyze scenario'")
    assert lines[2].startswith("- [done] LLM 'List all machinery'")
    assert lines[3].startswith("- [done] Tool 'Categorize machinery'")
    assert "  Crane: Heavy Equipment" in lines


def test_demo_json_renders_run_tree() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["demo", "x", "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["input"] == "x"
    assert len(payload["output"]["machinery"]) == 3
    assert [task["input"] for task in payload["tasks"][0]["subtasks"]] == [
        "List all machinery",
        "Categorize machinery",
    ]


def test_demo_through_mock_gateway() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["demo", "--use-gateway"])

    assert result.exit_code == 0, result.output
    assert f"Answer: {MOCK_RESPONSE_TEXT}" in result.output


def test_tools_lists_detected_tools_with_descriptions() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["tools", "need a summary"])

    assert result.exit_code == 0
    assert result.output.startswith("summarize_report: ")


def test_tools_reports_no_match() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["tools", "hello"])

    assert result.output.strip() == "No tools detected."


def test_classify_shows_input_type() -> None:
    result = CliRunner().invoke(risk_orchestrator, ["classify", "Is this safe?"])

    assert result.exit_code == 0
    assert "input_type=question" in result.output


def test_chat_closes_gateway(monkeypatch, closable_gateways) -> None:
    monkeypatch.setattr(
        "risk_orchestrator.orchestrator.services.select_gateway",
        lambda endpoint: _ClosableMockGateway(),
    )

    result = CliRunner().invoke(risk_orchestrator, ["chat", "hello", "--endpoint", ""])

    assert result.exit_code == 0, result.output
    assert [gateway.closed for gateway in closable_gateways] == [True]


def test_chat_closes_gateway_on_backend_failure(monkeypatch, closable_gateways) -> None:
    monkeypatch.setattr(
        "risk_orchestrator.orchestrator.services.select_gateway",
        lambda endpoint: _ClosableMockGateway(fail=True),
    )

    result = CliRunner().invoke(risk_orchestrator, ["chat", "hello", "--endpoint", ""])

    assert result.exit_code != 0
    assert "Backend unreachable" in result.output
    assert [gateway.closed for gateway in closable_gateways] == [True]


@pytest.mark.parametrize("fail", [False, True])
def test_demo_closes_gateway(monkeypatch, closable_gateways, fail: bool) -> None:
    monkeypatch.setattr(
        "risk_orchestrator.orchestrator.controllers.select_gateway",
        lambda endpoint: _ClosableMockGateway(fail=fail),
    )

    result = CliRunner().invoke(risk_orchestrator, ["demo", "--use-gateway"])

    assert (result.exit_code == 0) is not fail, result.output
    assert [gateway.closed for gateway in closable_gateways] == [True]
