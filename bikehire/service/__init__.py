"""
The service layer for the system. Acts as the internal API.
The REST API (and anything else that books bikes) should use
the service layer to implement its logic.

It holds the booking engine: which slots contend for the same
bikes, how many bikes of each size are left, which bike each
rider gets, and how a booking is submitted.
"""
