#!/usr/bin/env python3
"""
Policy Rules Engine — Operator Tool

Single entry point for database setup and batch job control.
Usage: python manage.py <command> [options]
"""

import asyncio
import json
import logging
import os
import subprocess
import sys
from datetime import datetime
from typing import List, Optional

BACKEND_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend")


# ═══════════════════════════════════════════════════════════
#  Logging Setup
# ═══════════════════════════════════════════════════════════

class ColorFormatter(logging.Formatter):
    """Console formatter with ANSI colors and level symbols."""

    COLORS = {
        "INFO": "\033[96m",        # Cyan
        "SUCCESS": "\033[92m",     # Green
        "WARNING": "\033[93m",     # Yellow
        "ERROR": "\033[91m",       # Red
        "CRITICAL": "\033[91m\033[1m",  # Bold Red
        "DEBUG": "\033[94m",       # Blue
        "HEADER": "\033[95m",      # Magenta
        "BOLD": "\033[1m",
        "RESET": "\033[0m",
    }

    SYMBOLS = {
        "INFO": "→",
        "SUCCESS": "✓",
        "WARNING": "⚠",
        "ERROR": "✗",
        "CRITICAL": "☠",
        "DEBUG": "•",
        "STEP": "▶",
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.platform != "win32"

    def _colorize(self, text: str, color_name: str) -> str:
        if not self.use_colors:
            return text
        color = self.COLORS.get(color_name, "")
        return f"{color}{text}{self.COLORS['RESET']}" if color else text

    def format(self, record: logging.LogRecord) -> str:
        msg = str(record.msg)

        if "[SUCCESS]" in msg:
            symbol, color = self.SYMBOLS["SUCCESS"], "SUCCESS"
        elif "[WARNING]" in msg:
            symbol, color = self.SYMBOLS["WARNING"], "WARNING"
        elif "[ERROR]" in msg:
            symbol, color = self.SYMBOLS["ERROR"], "ERROR"
        elif "[STEP]" in msg:
            symbol, color = self.SYMBOLS["STEP"], "INFO"
        else:
            symbol, color = self.SYMBOLS.get(record.levelname, ""), record.levelname

        if symbol and not msg.startswith(("===", " ")):
            record.msg = f"{symbol} {msg}"

        if self.use_colors:
            if msg.startswith("==="):
                record.msg = self._colorize(str(record.msg), "HEADER")
            else:
                record.msg = self._colorize(str(record.msg), color)

        return super().format(record)


# --- Bootstrap logger --------------------------------------------------------
_log_dir = "logs"
os.makedirs(_log_dir, exist_ok=True)
_log_file = os.path.join(_log_dir, f"manage-{datetime.now():%Y%m%d}.log")

_file_handler = logging.FileHandler(_log_file, encoding="utf-8")
_file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))

_console_handler = logging.StreamHandler()
_console_handler.setFormatter(ColorFormatter())

logging.basicConfig(level=logging.INFO, handlers=[_file_handler, _console_handler])
logger = logging.getLogger("manage")


# ═══════════════════════════════════════════════════════════
#  Rules Manager
# ═══════════════════════════════════════════════════════════

class RulesManager:
    """Database setup and in-process batch job control."""

    def __init__(self, business_date: Optional[str] = None, actor: Optional[str] = None):
        self.business_date = business_date
        self.actor = actor

    # ─── Helpers ──────────────────────────────────────────
    def _run(self, cmd: List[str], check: bool = True) -> subprocess.CompletedProcess:
        logger.info(f"[STEP] Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, check=check, text=True, capture_output=True, cwd=BACKEND_DIR)
            if result.stdout:
                for line in result.stdout.strip().splitlines():
                    if line.strip():
                        logger.info(f"  {line.strip()}")
            if result.stderr:
                for line in result.stderr.strip().splitlines():
                    if line.strip():
                        logger.info(f"  {line.strip()}")
            return result
        except subprocess.CalledProcessError as exc:
            logger.error(f"Command failed (exit {exc.returncode})")
            if exc.stderr:
                logger.error(f"  {exc.stderr.strip()}")
            raise

    # ─── Database ─────────────────────────────────────────
    def init_db(self) -> None:
        """Run Alembic migrations."""
        logger.info("\n=== Database Initialisation ===")
        self._run(["alembic", "upgrade", "head"])
        logger.info("[SUCCESS] Database migrations applied!")

    def seed(self) -> None:
        """Insert development users, agents, customers and policies."""
        logger.info("\n=== Seeding Database ===")
        self._run([sys.executable, "-m", "scripts.seed_data"])
        logger.info("[SUCCESS] Seed data inserted!")

    # ─── Batch jobs ───────────────────────────────────────
    def run_job(self, job_name: str, honour_stop: bool = True) -> None:
        """Run a batch job to completion in this process."""
        from app.core.logging import setup_logging
        from app.tasks.batch_tasks import run_job_once

        setup_logging()
        label = self.business_date or "today"
        logger.info(f"\n=== Batch: {job_name} ({label}) ===")
        summary = asyncio.run(
            run_job_once(
                job_name,
                actor=self.actor,
                business_date=self.business_date,
                honour_stop=honour_stop,
            )
        )

        status = summary["status"]
        marker = "[SUCCESS]" if status == "COMPLETED" else "[WARNING]"
        logger.info(
            f"{marker} {job_name}: {status}, selected={summary['selected']} "
            f"succeeded={summary['succeeded']} failed={summary['failed']} "
            f"({summary['duration_ms']} ms)"
        )
        for failure in summary["failures"]:
            logger.warning(f"  item {failure['item_id']}: {failure['error_type']}: {failure['error']}")

    def stop(self, job_name: str) -> None:
        """Ask a running job to stop after its current item."""
        from app.batch.control import request_stop
        from app.batch.registry import resolve_job

        job = resolve_job(job_name)
        asyncio.run(request_stop(job.name))
        logger.info(f"[SUCCESS] Stop requested for '{job.name}'")

    def runs(self, limit: int = 10) -> None:
        """Show the most recent batch runs."""
        from app.batch.persist import recent_runs

        logger.info(f"\n=== Last {limit} Batch Runs ===")
        rows = asyncio.run(recent_runs(limit))
        if not rows:
            logger.info("  (none)")
            return
        for row in rows:
            logger.info(
                f"  {row['started_at']}  {row['job_name']:<8} {row['business_date']}  "
                f"{row['status']:<20} ok={row['succeeded']}/{row['selected']} failed={row['failed']}"
            )
        logger.debug(json.dumps(rows, default=str))


# ═══════════════════════════════════════════════════════════
#  CLI
# ═══════════════════════════════════════════════════════════

USAGE = f"""
{ColorFormatter.COLORS['HEADER']}Policy Rules Engine — Operator Tool{ColorFormatter.COLORS['RESET']}
{'═' * 50}

{ColorFormatter.COLORS['BOLD']}Usage:{ColorFormatter.COLORS['RESET']} python manage.py <command> [options]

{ColorFormatter.COLORS['BOLD']}Commands:{ColorFormatter.COLORS['RESET']}
    {ColorFormatter.COLORS['INFO']}init-db{ColorFormatter.COLORS['RESET']}         Run Alembic migrations
    {ColorFormatter.COLORS['INFO']}seed{ColorFormatter.COLORS['RESET']}            Insert development seed data
    {ColorFormatter.COLORS['INFO']}renew{ColorFormatter.COLORS['RESET']}           Run the renewal job now
    {ColorFormatter.COLORS['INFO']}bill{ColorFormatter.COLORS['RESET']}            Run the recurring billing job now
    {ColorFormatter.COLORS['WARNING']}stop JOB{ColorFormatter.COLORS['RESET']}        Request a cooperative stop (renewal | billing)
    {ColorFormatter.COLORS['INFO']}runs{ColorFormatter.COLORS['RESET']}            Show recent batch runs

{ColorFormatter.COLORS['BOLD']}Options:{ColorFormatter.COLORS['RESET']}
    --date=YYYY-MM-DD   Business date for renew/bill (default: today)
    --actor=NAME        Actor recorded on audit rows (default: BATCH_ACTOR)
    --no-redis          Run without polling the stop flag
    --limit=N           Rows to show for 'runs' (default 10)

{ColorFormatter.COLORS['BOLD']}Examples:{ColorFormatter.COLORS['RESET']}
    python manage.py init-db
    python manage.py renew --date=2026-03-31
    python manage.py stop billing
    python manage.py runs --limit=20
"""


def _option(opts: List[str], name: str) -> Optional[str]:
    for o in opts:
        if o.startswith(f"--{name}="):
            return o.split("=", 1)[1]
    return None


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(USAGE)
        sys.exit(0)

    command = sys.argv[1]
    opts = sys.argv[2:]
    args = [o for o in opts if not o.startswith("--")]

    mgr = RulesManager(business_date=_option(opts, "date"), actor=_option(opts, "actor"))
    honour_stop = "--no-redis" not in opts

    try:
        if command == "init-db":
            mgr.init_db()
        elif command == "seed":
            mgr.seed()
        elif command == "renew":
            mgr.run_job("renewal", honour_stop=honour_stop)
        elif command == "bill":
            mgr.run_job("billing", honour_stop=honour_stop)
        elif command == "stop":
            if not args:
                logger.error("stop needs a job name (renewal | billing)")
                sys.exit(1)
            mgr.stop(args[0])
        elif command == "runs":
            mgr.runs(limit=int(_option(opts, "limit") or 10))
        else:
            logger.error(f"Unknown command: {command}")
            print(USAGE)
            sys.exit(1)
    except Exception as exc:
        logger.error(f"Operation failed: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
