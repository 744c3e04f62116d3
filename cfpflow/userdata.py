# cfpflow/userdata.py
"""Generate test identities with Faker."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from faker import Faker

from cfpflow.types import TestUser

logger = logging.getLogger(__name__)


class TestDataGenerator:
    """Generate realistic test data using Faker"""
    __test__ = False

    def __init__(self, locale: str = "pt_BR", seed: Optional[int] = None):
        self.faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

    def user(self) -> TestUser:
        """
        Build a fresh identity for one run.

        The email and username carry a random suffix so concurrent runs
        against the same service never collide on uniqueness constraints.
        """
        suffix = uuid.uuid4().hex[:10]
        username = f"{self.faker.user_name()}_{suffix}"
        email = f"cfpflow+{suffix}@{self.faker.free_email_domain()}"
        password = self.faker.password(length=14, special_chars=True, digits=True, upper_case=True)
        phone = self.faker.msisdn()

        logger.debug(f"Generated test user {email}")
        return TestUser(username=username, email=email, password=password, phone=phone)

    def random_credentials(self) -> dict:
        """Email/password pair that belongs to nobody."""
        return {
            "email": f"nobody+{uuid.uuid4().hex}@{self.faker.free_email_domain()}",
            "password": self.faker.password(length=16),
        }


def generate_test_user(seed: Optional[int] = None) -> TestUser:
    return TestDataGenerator(seed=seed).user()


def user_from_credentials(email: str, password: str) -> TestUser:
    """Wrap configured credentials of an existing account."""
    local = email.split("@", 1)[0]
    return TestUser(username=local, email=email, password=password, phone="")
