#!/usr/bin/env python3
"""
Database initialization script for the AImploy payments backend.

This script handles:
- Running Alembic migrations against the Supabase Postgres database
- Optional seeding of the reference subscription plans

Usage:
    python scripts/init_db.py [--seed-plans]
"""

import os
import sys
import argparse
import subprocess
from decimal import Decimal
from pathlib import Path

# add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select

from app.db.session import session_scope
from app import models
import logging

# configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


DEFAULT_PLANS = [
    {"name": "Free", "job_limit": 1, "price": Decimal("0.00"), "features": ["Basic job posting", "Email support"]},
    {"name": "Pro", "job_limit": 10, "price": Decimal("29.99"), "features": ["10 job postings", "Priority support", "Analytics dashboard"]},
    {
        "name": "Business",
        "job_limit": 50,
        "price": Decimal("99.99"),
        "features": ["50 job postings", "Priority support", "Analytics dashboard", "Custom branding"],
    },
]


def run_migrations():
    """run Alembic migrations to create/update schema."""
    try:
        logger.info("Running Alembic migrations...")
        os.chdir(project_root)
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            capture_output=True,
            text=True,
            check=True
        )
        logger.info("Migrations completed successfully")
        logger.debug(f"Migration output: {result.stdout}")
        return True

    except subprocess.CalledProcessError as e:
        logger.error(f"Error running migrations: {e}")
        logger.error(f"Migration error output: {e.stderr}")
        return False


def seed_plans():
    """insert the reference plans that are missing, matched by name."""
    try:
        with session_scope() as db:
            existing = set(db.execute(select(models.SubscriptionPlan.name)).scalars())
            for plan in DEFAULT_PLANS:
                if plan["name"] in existing:
                    logger.info(f"Plan {plan['name']} already exists")
                    continue
                db.add(models.SubscriptionPlan(**plan))
                logger.info(f"Seeded plan {plan['name']}")
        return True
    except Exception as e:
        logger.error(f"Error seeding plans: {e}")
        return False


def main():
    parser = argparse.ArgumentParser(description="Initialize the AImploy payments database")
    parser.add_argument("--seed-plans", action="store_true", help="Seed the Free/Pro/Business plans")
    parser.add_argument("--skip-migrations", action="store_true", help="Do not run alembic upgrade head")
    args = parser.parse_args()

    if not args.skip_migrations and not run_migrations():
        sys.exit(1)
    if args.seed_plans and not seed_plans():
        sys.exit(1)
    logger.info("Database initialization complete")


if __name__ == "__main__":
    main()
