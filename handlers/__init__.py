"""
handlers/ - Presentation Layer
================================
HTTP request handlers. Each handler receives a request, delegates to the
appropriate Repository, and maps the database result to a status code
and JSON body. No business logic lives here.
"""
