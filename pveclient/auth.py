"""Ticket authentication against ``access/ticket``."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import requests

from .dispatch import dispatch
from .session import CSRF_FIELD, ClientSession

logger = logging.getLogger(__name__)

TICKET_PATH = "access/ticket"


def authenticate(session: ClientSession, http: requests.Session) -> int:
    """
    Exchange the session credentials for a ticket and CSRF token.

    Fills ``session.tickets`` and sets its connection status. A rejected
    login only flips the status to ``error``; it is up to the caller to
    decide whether that is fatal.

    Args:
        session: Session whose ticket store is populated
        http: requests session used for the exchange

    Returns:
        HTTP status code of the ticket response

    Raises:
        TransportError: If the ticket endpoint cannot be reached
    """
    creds = session.credentials
    form = {"username": creds.username, "realm": creds.realm, "password": creds.password}

    # passwords may contain & or =, so the login form is fully escaped
    response = dispatch(session, http, "POST", TICKET_PATH, urlencode(form))

    if response.status_code != 200:
        logger.warning(
            "Login as %s@%s on %s failed: HTTP %s",
            creds.username, creds.realm, session.base_url, response.status_code,
        )
        session.tickets.mark_failed()
        return response.status_code

    try:
        body = response.json()
    except ValueError:
        body = None

    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict):
        logger.warning("Login on %s returned an unreadable ticket response", session.base_url)
        session.tickets.mark_failed()
        return response.status_code

    ticket = data.get("ticket")
    if ticket is None:
        logger.warning("Ticket response from %s carried no ticket", session.base_url)

    session.tickets.record_ticket(ticket, data.get(CSRF_FIELD))
    logger.info("Connected to %s as %s@%s", session.base_url, creds.username, creds.realm)
    return response.status_code
