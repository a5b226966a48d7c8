"""CLI entrypoint for risk-orchestrator."""

import logging

import rich_click as click

from risk_orchestrator import __version__
from risk_orchestrator.orchestrator.controllers import (
    ChatCommand,
    DemoCommand,
    OrchestratorCliController,
)
from risk_orchestrator.orchestrator.envelope import EncodingError
from risk_orchestrator.orchestrator.gateway import GatewayError
from risk_orchestrator.orchestrator.services import InvalidInputError

click.rich_click.USE_MARKDOWN = True
ORCHESTRATOR_CONTROLLER = OrchestratorCliController()

DEMO_DEFAULT_INPUT = "Analyze scenario, List all machinery, Categorize machinery"


@click.group()
@click.version_option(version=__version__, prog_name="risk-orchestrator")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def risk_orchestrator(log_level: str) -> None:
    """Risk assessment task orchestrator CLI."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@risk_orchestrator.command("chat")
@click.argument("text")
@click.option(
    "--endpoint",
    default=None,
    help=(
        "Backend JSON-RPC endpoint. Empty string uses the mock backend. "
        "If omitted, RISK_ORCHESTRATOR_GATEWAY_ENDPOINT is used."
    ),
)
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Backend call timeout. Defaults to RISK_ORCHESTRATOR_GATEWAY_TIMEOUT_SECONDS.",
)
def chat(text: str, endpoint: str | None, timeout_seconds: float | None) -> None:
    """Send one chat message through tool detection and the backend gateway."""

    try:
        lines = ORCHESTRATOR_CONTROLLER.chat(
            ChatCommand(
                text=text,
                endpoint=endpoint,
                timeout_seconds=timeout_seconds,
            ),
        )
    except (InvalidInputError, GatewayError, EncodingError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@risk_orchestrator.command("demo")
@click.argument("text", default=DEMO_DEFAULT_INPUT)
@click.option("--json", "as_json", is_flag=True, help="Print the executed run as JSON.")
@click.option(
    "--halt-on-failure/--continue-on-failure",
    default=None,
    help="Stop the run at the first failed task. Defaults to RISK_ORCHESTRATOR_HALT_ON_FAILURE.",
)
@click.option(
    "--use-gateway",
    is_flag=True,
    help="Send LLM tasks through the configured backend gateway instead of the local stand-in.",
)
def demo(text: str, as_json: bool, halt_on_failure: bool | None, use_gateway: bool) -> None:
    """Build and execute the demo analyze/enumerate/categorize task tree."""

    try:
        result = ORCHESTRATOR_CONTROLLER.demo(
            DemoCommand(
                text=text,
                as_json=as_json,
                halt_on_failure=halt_on_failure,
                use_gateway=use_gateway,
            ),
        )
    except (InvalidInputError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Demo run failed.")


@risk_orchestrator.command("tools")
@click.argument("text")
def tools(text: str) -> None:
    """List tools whose keywords occur in TEXT, in registry order."""

    _emit_lines(ORCHESTRATOR_CONTROLLER.tools(text))


@risk_orchestrator.command("classify")
@click.argument("text")
def classify(text: str) -> None:
    """Show the input type and system prompt selected for TEXT."""

    _emit_lines(ORCHESTRATOR_CONTROLLER.classify(text))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    risk_orchestrator()
