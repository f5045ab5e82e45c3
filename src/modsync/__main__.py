"""Allow running as python -m modsync."""

from modsync.cli import app

app(prog_name="modsync")
