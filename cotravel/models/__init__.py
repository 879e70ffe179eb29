from cotravel.models.base import Base
from cotravel.models.intent import TravelIntentRecord

__all__ = ["Base", "TravelIntentRecord"]
