"""
HTTP endpoints of the VehiQuest service, one router per resource area.
"""
from . import bookings, payments, session, stats, users, vehicles

ROUTERS = [
    session.router,
    users.router,
    vehicles.router,
    bookings.router,
    payments.router,
    stats.router,
]
