"""
Chat app: membership state machine and real-time fan-out.

This app handles:
- Private and group chats, membership, roles and admin permissions
- Bans, kicks, joins and leaves
- Messages, edits and read positions
- Presence and event fan-out over Django Channels

Related apps:
    - accounts: User model and the identity context

WebSocket Support:
    See consumers.py for the event consumer.
    See router.py for presence tracking and recipient resolution.
    See events.py for the wire shape of every event.

Usage:
    from chat.services import ChatService, MembershipService, MessageService

    chat = ChatService.create_group(owner, name="Team", tag="team1").raise_for_error()
    MembershipService.join(chat.id, other_user).raise_for_error()
    MessageService.send(chat.id, owner, "Hello!").raise_for_error()
"""
