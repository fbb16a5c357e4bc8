"""
Startup data seeder

Creates the demo admin and two demo users, each with a default portfolio.
Running it again leaves existing accounts untouched.
"""

import logging

import database
from models.common import ActivityAction, EntityType, Role
from services import security
from services.activity_log import activity_log_service
from services.portfolios import portfolio_service

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"email": "admin@portfolio.com", "password": "Admin@123", "first_name": "Admin",
     "last_name": "User", "role": Role.ADMIN},
    {"email": "user1@portfolio.com", "password": "User@123", "first_name": "John",
     "last_name": "Doe", "role": Role.USER},
    {"email": "user2@portfolio.com", "password": "User@123", "first_name": "Jane",
     "last_name": "Smith", "role": Role.USER},
]


def seed_database() -> int:
    """
    Insert the seed accounts that do not exist yet

    Returns:
        Number of users created
    """
    created = 0
    for seed in SEED_USERS:
        if database.get_user_by_email(seed["email"]) is not None:
            continue

        user = database.create_user(
            email=seed["email"],
            first_name=seed["first_name"],
            last_name=seed["last_name"],
            password_hash=security.hash_password(seed["password"]),
            role=seed["role"].value,
            email_confirmed=True
        )
        portfolio_service.get_or_create_default(user["id"])
        activity_log_service.log_activity(
            user["id"], ActivityAction.SEED, EntityType.USER, user["id"],
            f"Seeded {seed['role'].value.lower()} account {seed['email']}"
        )
        created += 1

    if created:
        logger.info(f"Seeded {created} users")
    else:
        logger.info("Seed users already present, nothing to do")
    return created


def run_seeder() -> None:
    """Seed at startup; a failure is logged and startup continues"""
    try:
        seed_database()
    except Exception as e:
        logger.error(f"Error seeding database: {e}")
