"""
Bootstrap an admin (or organizer) account. Registration only ever creates
plain users, so the first privileged account has to come from here.

  python -m ticketing.create_admin --email admin@events.com --password admin123
  python -m ticketing.create_admin --email org@events.com --password org12345 --role organizer
"""

import argparse
import asyncio

from ticketing.core.logging import get_logger, setup_logging
from ticketing.db.session import AsyncSessionLocal, engine
from ticketing.services.auth_service import ensure_account

logger = get_logger(__name__)


async def main(email: str, password: str, role: str) -> None:
    async with AsyncSessionLocal() as session:
        user, created = await ensure_account(session, email, password, role)
        await session.commit()
    await engine.dispose()

    if created:
        print(f"Created {role} account {user.email} (id={user.id})")
    else:
        print(f"{user.email} already exists; role set to {role}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an admin or organizer account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--role", choices=["admin", "organizer"], default="admin")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(args.email, args.password, args.role))
