"""
The models package contains the tables used by the database store.

.. autoclasstree:: bikehire.models
"""

from .bike import Bike, SizeRange
from .booking import Booking, Rider, BookingAttempt
from .coupon import Coupon
