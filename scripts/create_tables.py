#!/usr/bin/env python3
import asyncio
import click

from eventhub.db.session import Base, engine
# Import models so they're registered with the Base
from eventhub.db import models  # noqa: F401


@click.command()
@click.option("--drop", is_flag=True, help="Drop existing tables first.")
def create_tables(drop):
    """Create all database tables directly using SQLAlchemy"""

    async def _create_tables():
        async with engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()
        click.echo("All tables created successfully!")

    asyncio.run(_create_tables())

if __name__ == "__main__":
    create_tables()
