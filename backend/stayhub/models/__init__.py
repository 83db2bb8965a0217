from stayhub.models.user import User
from stayhub.models.listing import Listing
from stayhub.models.reservation import Reservation, ReservationStatus

__all__ = ["User", "Listing", "Reservation", "ReservationStatus"]
