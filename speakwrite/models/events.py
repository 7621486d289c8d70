"""Pub/sub topic names for recording session events.

Every topic carries a single ``status`` argument holding a SessionStatus.
"""

SESSION_STATE_TOPIC = "session.state"
SESSION_DRAFT_TOPIC = "session.draft"
SESSION_TICK_TOPIC = "session.tick"
