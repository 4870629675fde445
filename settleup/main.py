"""Main entry point: print balances and the payment plan of a group."""

import argparse
import asyncio
import logging

from settleup.config.settings import settings
from settleup.core.exceptions import SettleUpError
from settleup.database.session import sessionmanager
from settleup.services.balance_service import BalanceService
from settleup.services.group_service import GroupService
from settleup.utils.formatters import format_balances, format_breakdown, format_plan

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def on_startup():
    """Actions to perform on startup."""
    sessionmanager.init(settings.database_url)
    await sessionmanager.create_all()
    logger.info("Database session manager initialized")


async def on_shutdown():
    """Actions to perform on shutdown."""
    await sessionmanager.close()
    logger.info("Database connections closed")


async def report(group_id: int, breakdown: bool = False) -> str:
    """Build the text report for one group."""
    async with sessionmanager.session() as session:
        group = await GroupService(session).get_group(group_id)
        if group is None:
            raise SystemExit(f"Group {group_id} not found")

        balance_service = BalanceService(session)
        result = await balance_service.calculate(group_id)

        sections = [
            f"{group.name} ({group.currency})",
            format_balances(result.balances, currency=group.currency, digits=settings.currency_digits),
            format_plan(result.plan, currency=group.currency, digits=settings.currency_digits),
        ]
        if breakdown:
            rows = await balance_service.get_breakdown(group_id)
            sections.append(format_breakdown(rows, currency=group.currency, digits=settings.currency_digits))

        return "\n\n".join(sections)


async def main(group_id: int, breakdown: bool = False):
    """Main function to print a group report."""
    await on_startup()
    try:
        print(await report(group_id, breakdown))
    except SettleUpError as e:
        logger.error(f"Could not build report for group {group_id}: {e}")
        raise SystemExit(1)
    finally:
        await on_shutdown()


def run():
    parser = argparse.ArgumentParser(description="Show balances and suggested payments for a group")
    parser.add_argument("group_id", type=int, help="Group ID")
    parser.add_argument("--breakdown", action="store_true", help="Show how each balance was calculated")
    args = parser.parse_args()

    configure_logging()
    try:
        asyncio.run(main(args.group_id, args.breakdown))
    except KeyboardInterrupt:
        logger.info("Stopped by user")


if __name__ == "__main__":
    run()
