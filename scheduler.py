import asyncio
import time

import schedule

from bootstrap import build_agent, build_repository
from config.logging_config import log
from config.settings import settings


async def _weekly_alerts():
    agent = build_agent(await build_repository(settings))
    try:
        return await agent.send_weekly_alerts()
    finally:
        await agent.coordinator.close()


async def _daily_cleanup():
    agent = build_agent(await build_repository(settings))
    try:
        return await agent.cleanup_expired_sessions()
    finally:
        await agent.coordinator.close()


def run_alerts_job():
    log.info("Starting weekly alerts job...")
    try:
        counts = asyncio.run(_weekly_alerts())
        log.info(f"Weekly alerts job finished: {counts}")
    except Exception as e:
        log.error(f"Weekly alerts error: {e}")


def run_cleanup_job():
    log.info("Starting cleanup job...")
    try:
        removed = asyncio.run(_daily_cleanup())
        log.info(f"Cleanup job finished: {removed} session(s) removed")
    except Exception as e:
        log.error(f"Session cleanup error: {e}")


def start_scheduler():
    log.info(
        f"Scheduler started. Alerts every {settings.ALERT_DAY} at {settings.ALERT_TIME}, "
        f"cleanup daily at {settings.CLEANUP_TIME}."
    )
    getattr(schedule.every(), settings.ALERT_DAY).at(settings.ALERT_TIME).do(run_alerts_job)
    schedule.every().day.at(settings.CLEANUP_TIME).do(run_cleanup_job)
    while True:
        schedule.run_pending()
        time.sleep(1)
