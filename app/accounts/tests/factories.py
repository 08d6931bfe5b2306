"""
Factory Boy factories for account models.

Provides realistic test data generation for:
- User: Custom user model with email login and a unique tag
- PendingUser: Unverified registrations

Usage:
    from accounts.tests.factories import PendingUserFactory, UserFactory

    # Create a user with default values
    user = UserFactory()

    # Create a user with a chosen tag
    user = UserFactory(tag="ada", name="Ada")

    # Create an expired registration
    pending = PendingUserFactory(expired=True)
"""

from datetime import timedelta

import factory
from django.contrib.auth.hashers import make_password
from django.utils import timezone

from accounts.models import PendingUser, User


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Creates active users through UserManager.create_user() so passwords
    are hashed. The default password is "TestPass123!".

    Examples:
        # Basic user
        user = UserFactory()

        # Online user
        user = UserFactory(online=True)

        # Inactive user (deactivated)
        user = UserFactory(is_active=False)
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    tag = factory.Sequence(lambda n: f"user_{n}")
    name = factory.Sequence(lambda n: f"User {n}")
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class PendingUserFactory(factory.django.DjangoModelFactory):
    """
    Factory for PendingUser model.

    Traits:
        expired: expires_at in the past
    """

    class Meta:
        model = PendingUser

    email = factory.Sequence(lambda n: f"pending{n}@example.com")
    password = factory.LazyFunction(lambda: make_password("TestPass123!"))

    class Params:
        expired = factory.Trait(
            expires_at=factory.LazyFunction(lambda: timezone.now() - timedelta(hours=1))
        )
