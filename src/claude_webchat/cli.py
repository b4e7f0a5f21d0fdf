"""CLI entry point for claude-webchat."""

import asyncio
import logging
import sys
from pathlib import Path

import click
import uvicorn

from . import __version__
from .client import ConversationClient
from .display import ConsoleSink
from .export import EXPORTERS
from .store import FileSessionStore

COOKIE_INSTRUCTIONS = """\
How to get your Claude session cookie:

  1. Open claude.ai in your browser and log in
  2. Open DevTools (F12)
  3. Go to Application -> Cookies -> https://claude.ai
  4. Find the "sessionKey" cookie and copy its value

Alternatively, copy the full Cookie header from a network request to claude.ai/api/*
"""

CHAT_HELP = """\
Commands:
  /new                 start a new conversation
  /export md|json [F]  write the transcript to F (default: print it)
  /help                show this help
  /quit                leave
"""

LANGUAGES = {
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".jsx": "jsx",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".sh": "bash",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".md": "markdown",
}


def guess_language(path: str) -> str:
    """Return a code fence language tag for a file name ("" if unknown)."""
    return LANGUAGES.get(Path(path).suffix.lower(), "")


def build_code_prompt(code: str, language: str = "", question: str = "") -> str:
    """Wrap a code snippet in a fenced block, followed by an optional question."""
    label = language or "code"
    prompt = f"Here's some {label} I'd like help with:\n```{language}\n{code.rstrip()}\n```\n"
    if question:
        prompt += f"\n{question.strip()}\n"
    return prompt


@click.group()
@click.version_option(version=__version__, prog_name="claude-webchat")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool):
    """Chat with claude.ai using your browser session cookie.

    Experimental: this talks to the claude.ai web app, not the official API.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("set-cookie")
@click.option("--cookie", help="Cookie value; prompted for (hidden) when omitted.")
def set_cookie(cookie: str | None):
    """Store your claude.ai session cookie."""
    if not cookie:
        click.echo(COOKIE_INSTRUCTIONS)
        cookie = click.prompt(
            "Paste your session cookie (sessionKey=...) or full Cookie header",
            hide_input=True,
        )
    if not cookie.strip():
        raise click.UsageError("Cookie must not be empty.")

    store = FileSessionStore()
    store.set(cookie)
    click.echo(f"Cookie saved to {store.path}. Run \"claude-webchat chat\" to start chatting.")


@main.command("clear-cookie")
def clear_cookie():
    """Forget the stored session cookie."""
    FileSessionStore().delete()
    click.echo("Cookie cleared.")


@main.command()
def status():
    """Show whether a session cookie is stored."""
    store = FileSessionStore()
    if store.has_token():
        click.echo(f"Session cookie: set ({store.path})")
    else:
        click.echo("Session cookie: not set")
        sys.exit(1)


@main.command()
def chat():
    """Start an interactive chat in the terminal."""
    asyncio.run(_chat_loop())


@main.command()
@click.argument("path", type=click.Path(allow_dash=True))
@click.option("-q", "--question", default="", help="Question to ask about the code.")
@click.option("-l", "--language", default=None, help="Code fence language (guessed from PATH).")
def ask(path: str, question: str, language: str | None):
    """Ask about the code in PATH ("-" reads stdin)."""
    if path == "-":
        code = sys.stdin.read()
    else:
        try:
            code = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise click.FileError(path, hint=str(e))
    if not code.strip():
        raise click.UsageError("Nothing to ask about: the input is empty.")

    lang = language if language is not None else guess_language(path)
    prompt = build_code_prompt(code, lang, question)
    asyncio.run(_ask_once(prompt))


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the web chat page."""
    click.echo(f"Starting claude-webchat on http://{host}:{port}")
    uvicorn.run("claude_webchat.server:app", host=host, port=port, reload=False)


# ── Async runners ────────────────────────────────────────────────


async def _ask_once(prompt: str) -> None:
    async with ConversationClient(FileSessionStore(), ConsoleSink(echo_user=False)) as client:
        await client.send_prompt(prompt)


async def _chat_loop() -> None:
    async with ConversationClient(FileSessionStore(), ConsoleSink()) as client:
        client.publish_auth_status()
        click.echo("Type a message, or /help for commands.")
        while True:
            try:
                line = await asyncio.to_thread(click.prompt, "You", prompt_suffix="> ", default="", show_default=False)
            except (EOFError, click.Abort):
                click.echo()
                return

            command = line.strip()
            if command in ("/quit", "/exit"):
                return
            elif command == "/help":
                click.echo(CHAT_HELP)
            elif command == "/new":
                client.reset_conversation()
            elif command.startswith("/export"):
                _export(client, command.split()[1:])
            else:
                await client.send_prompt(line)


def _export(client: ConversationClient, args: list[str]) -> None:
    fmt = args[0] if args else "md"
    exporter = EXPORTERS.get(fmt)
    if exporter is None:
        click.echo(click.style(f"Unknown export format: {fmt}", fg="red"), err=True)
        return

    content = exporter(client.messages, conversation_id=client.conversation_id)
    if len(args) > 1:
        Path(args[1]).write_text(content, encoding="utf-8")
        click.echo(f"Transcript written to {args[1]}")
    else:
        click.echo(content)
