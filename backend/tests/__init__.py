# Register every table with SQLModel metadata before fixtures call create_all
from app.models import (  # noqa: F401
    Band,
    BandSubscription,
    Church,
    Event,
    Song,
    TemporalToken,
    User,
)
