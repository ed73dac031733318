from relaybot.schemas.conversation import Turn

__all__ = ["Turn"]
