"""Ticket Desk: a small ticket-tracking REST service."""
