"""
Factory Boy factories for chat models.

These build rows directly and skip the services, so they neither check
permissions nor fan out events. Use them to arrange state (old messages,
pre-existing bans); use the services for the behaviour under test.

Usage:
    from chat.tests.factories import ChatFactory, ChatMemberFactory, MessageFactory

    group = ChatFactory(name="Team", tag="team")
    ChatMemberFactory(chat=group, user=user, role=MemberRole.OWNER)
    MessageFactory(chat=group, sender=user, created_at=yesterday)
"""

import factory

from accounts.tests.factories import UserFactory
from chat.models import BannedMember, Chat, ChatKind, ChatMember, MemberRole, Message


class ChatFactory(factory.django.DjangoModelFactory):
    """
    Factory for Chat model. Builds a public group by default.

    Traits:
        private: PRIVATE kind without name or tag
    """

    class Meta:
        model = Chat

    kind = ChatKind.PUBLIC_GROUP
    name = factory.Sequence(lambda n: f"Group {n}")
    tag = factory.Sequence(lambda n: f"group_{n}")
    description = ""

    class Params:
        private = factory.Trait(kind=ChatKind.PRIVATE, name="", tag=None)


class ChatMemberFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ChatMember

    chat = factory.SubFactory(ChatFactory)
    user = factory.SubFactory(UserFactory)
    role = MemberRole.MEMBER


class BannedMemberFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = BannedMember

    chat = factory.SubFactory(ChatFactory)
    user = factory.SubFactory(UserFactory)


class MessageFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Message

    chat = factory.SubFactory(ChatFactory)
    sender = factory.SubFactory(UserFactory)
    text = factory.Sequence(lambda n: f"Message {n}")
