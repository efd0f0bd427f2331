"""Command-line interface for Ridge-Code."""

import sys
import click
import logging
from typing import Optional

from .config import load_config, AppConfig
from .aidis_client import AidisClient, AidisClientError
from .history import ResponseHistory
from .llm_client import create_llm_client
from .router import CommandRouter, DirectiveResult
from .safety import SafetyPolicy
from .session import ChatSession


EXIT_COMMANDS = {'exit', 'quit', 'q'}
SHELL_PREFIX = '!'


def build_router(app_config: AppConfig) -> CommandRouter:
    """Wire history, AIDIS client and safety policy from configuration."""
    history = ResponseHistory(capacity=app_config.history.capacity)
    aidis_client = AidisClient(app_config.aidis)
    return CommandRouter(
        history,
        aidis_client,
        safety_policy=SafetyPolicy(app_config.shell.blocked_commands),
        shell_timeout=app_config.shell.timeout,
        store_window=app_config.history.store_window,
    )


def echo_result(result: DirectiveResult) -> None:
    """Print a directive result the way the interactive loop shows it."""
    if result.success:
        click.echo(click.style("✓ ", fg='green') + (result.output or "Command executed successfully"))
        return

    if result.output:
        click.echo(result.output)
    if result.blocked:
        click.echo(click.style(f"⛔ {result.error}", fg='yellow'), err=True)
    else:
        click.echo(click.style(f"✗ {result.error}", fg='red'), err=True)


@click.group()
@click.option('--log-level', default=None, help='Logging level (DEBUG, INFO, WARNING, ERROR)')
@click.option('--log-file', default=None, help='Write log records to this file instead of stderr')
@click.option('--config', '--config-file', help='Path to configuration file (YAML, TOML, or JSON)')
@click.pass_context
def cli(ctx, log_level: Optional[str], log_file: Optional[str], config: Optional[str]):
    """Ridge-Code - chat with an LLM and push what it finds into AIDIS."""
    ctx.ensure_object(dict)

    try:
        app_config = load_config(config_file=config)
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
    ctx.obj['config'] = app_config

    # CLI flag overrides config
    effective_log_level = log_level or app_config.log_level

    from .logging_utils import setup_logging
    setup_logging(effective_log_level, log_file=log_file)

    ctx.obj['router'] = build_router(app_config)


@cli.command()
@click.argument('directive', nargs=-1, required=True)
@click.pass_context
def run(ctx, directive):
    """Run a single directive (/aidis_*, /help, or a shell command)."""
    router: CommandRouter = ctx.obj['router']
    command = ' '.join(directive)
    if command.strip().startswith('/aidis_store'):
        # a one-shot run has no buffered responses to mine
        click.echo("❌ /aidis_store needs model output: use 'ridge-code aidis store' "
                   "or the chat loop", err=True)
        sys.exit(1)
    result = router.dispatch(command)
    echo_result(result)
    if not result.success:
        sys.exit(1)


@cli.command()
@click.argument('message', required=False)
@click.option('--interactive', '-i', is_flag=True, help='Start interactive mode after the message')
@click.pass_context
def chat(ctx, message: Optional[str], interactive: bool):
    """Send a single message or start interactive chat mode."""
    app_config: AppConfig = ctx.obj['config']
    router: CommandRouter = ctx.obj['router']
    logger = logging.getLogger(__name__)

    try:
        llm_client = create_llm_client(app_config.llm)
    except Exception as e:
        click.echo(f"❌ LLM client not available: {e}", err=True)
        sys.exit(1)

    session = ChatSession(llm_client, router.history)

    try:
        router.aidis_client.connect()
    except AidisClientError as e:
        logger.warning(f"AIDIS connection failed: {e}")
        click.echo(click.style(f"⚠ AIDIS connection failed (commands will not work): {e}", fg='yellow'))

    if message:
        _stream_reply(session, message)
        if not interactive:
            return

    _interactive_loop(session, router)


def _stream_reply(session: ChatSession, message: str) -> None:
    try:
        for chunk in session.stream(message):
            click.echo(chunk, nl=False)
    except Exception as e:
        click.echo()
        click.echo(click.style(f"✗ Error sending message: {e}", fg='red'), err=True)
        return

    click.echo()
    usage = session.llm_client.usage
    click.echo(click.style(f"[{usage.total_tokens} tokens]", dim=True))


def _interactive_loop(session: ChatSession, router: CommandRouter) -> None:
    click.echo(click.style("✓ Ridge-Code CLI started", fg='green'))
    click.echo(click.style("Type a message to chat, /help for commands, "
                           f"{SHELL_PREFIX}<command> for the shell", fg='yellow'))
    click.echo(click.style("Type 'exit' or press Ctrl+D to leave\n", dim=True))

    while True:
        try:
            user_input = click.prompt(click.style('ridge-code>', fg='cyan'),
                                      default='', show_default=False, prompt_suffix=' ').strip()
        except (EOFError, KeyboardInterrupt, click.Abort):
            click.echo()
            break

        if not user_input:
            continue
        if user_input.lower() in EXIT_COMMANDS:
            break

        if user_input.startswith('/'):
            echo_result(router.dispatch(user_input))
        elif user_input.startswith(SHELL_PREFIX):
            echo_result(router.dispatch(user_input[len(SHELL_PREFIX):]))
        else:
            _stream_reply(session, user_input)

    router.aidis_client.disconnect()
    click.echo(click.style("✓ Shutting down", fg='yellow'))


@cli.group()
def aidis():
    """AIDIS operations."""
    pass


@aidis.command()
@click.pass_context
def ping(ctx):
    """Test the connection to AIDIS."""
    result = ctx.obj['router'].dispatch('/aidis_ping')
    echo_result(result)
    if not result.success:
        sys.exit(1)


@aidis.command()
@click.option('--context', 'flag', flag_value='--context', help='Store context_store commands')
@click.option('--task', 'flag', flag_value='--task', help='Store task_create commands')
@click.argument('responses', nargs=-1, type=click.File('r', encoding='utf-8'))
@click.pass_context
def store(ctx, flag: Optional[str], responses):
    """Push commands embedded in saved model output to AIDIS.

    Each RESPONSES file is buffered as one response; without files the whole
    of stdin is one response. Inside `chat`, use /aidis_store instead.
    """
    if not flag:
        click.echo("❌ Usage: ridge-code aidis store --context|--task [RESPONSES]...", err=True)
        sys.exit(1)

    router: CommandRouter = ctx.obj['router']
    for source in responses or (click.get_text_stream('stdin'),):
        content = source.read()
        if content.strip():
            router.history.append(content)

    result = router.dispatch(f'/aidis_store {flag}')
    echo_result(result)
    if not result.success:
        sys.exit(1)


@aidis.command()
@click.pass_context
def status(ctx):
    """Show AIDIS connection and history status."""
    router: CommandRouter = ctx.obj['router']
    app_config: AppConfig = ctx.obj['config']
    connected = router.aidis_client.is_connected

    click.echo("AIDIS Status")
    click.echo(f"  AIDIS endpoint:   {app_config.aidis.base_url}")
    click.echo(f"  AIDIS connection: {'Connected' if connected else 'Disconnected'}")
    click.echo(f"  Response history: {router.history.size}/{router.history.capacity} responses")


@cli.group(name='config')
def config_group():
    """Configuration inspection."""
    pass


def _mask(value: Optional[str]) -> str:
    if not value:
        return '(not set)'
    if len(value) <= 12:
        return '*' * len(value)
    return value[:8] + '*' * (len(value) - 12) + value[-4:]


@config_group.command()
@click.pass_context
def show(ctx):
    """Show the effective configuration with API keys masked."""
    app_config: AppConfig = ctx.obj['config']
    data = app_config.model_dump()
    data['llm']['anthropic_api_key'] = _mask(app_config.llm.anthropic_api_key)
    data['llm']['openai_api_key'] = _mask(app_config.llm.openai_api_key)

    for section, values in data.items():
        if isinstance(values, dict):
            click.echo(f"[{section}]")
            for key, value in values.items():
                click.echo(f"  {key} = {value}")
        else:
            click.echo(f"{section} = {values}")


@config_group.command()
@click.argument('key')
@click.pass_context
def get(ctx, key: str):
    """Print a single configuration value by dotted key."""
    value = ctx.obj['config'].get(key)
    if value is None:
        click.echo(f"❌ Unknown configuration key: {key}", err=True)
        sys.exit(1)
    if key.endswith('api_key'):
        value = _mask(value)
    click.echo(f"{key} = {value}")


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == '__main__':
    main()
