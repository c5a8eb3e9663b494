#!/usr/bin/env python3
"""
Standalone Notification Runner

Runs one reminder pass without the HTTP server, for hosts that schedule
jobs with plain cron. Safe to run alongside the HTTP trigger.

Usage:
    python scripts/process_notifications.py
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from reminder_service.core.reminders.orchestrator import build_orchestrator
from reminder_service.infra.database import close_db
from reminder_service.main import setup_logging

logger = logging.getLogger("process_notifications")


async def main() -> int:
    """Run the orchestrator once and print the summary."""
    setup_logging()
    orchestrator = build_orchestrator()

    try:
        summary = await orchestrator.run()
    except Exception:
        logger.exception("Error processing notifications")
        print(json.dumps({"error": "Failed to process notifications"}))
        return 1
    finally:
        await orchestrator.close()
        await close_db()

    print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
