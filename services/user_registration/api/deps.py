"""
Shared dependencies for API endpoints.
"""

from fastapi import Request

from libs.rabbit import UserPublisher


def get_publisher(request: Request) -> UserPublisher:
    """
    Return the publisher bound to the application's broker channel.

    Before the channel is open this is a publisher without a channel, so
    publishing raises ``ChannelUnavailable`` instead of dropping the message.
    """
    publisher = getattr(request.app.state, "publisher", None)
    if publisher is None:
        return UserPublisher(None)
    return publisher
