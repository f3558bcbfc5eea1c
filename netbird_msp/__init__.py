"""NetBird MSP billing reconciliation: registered vs billable users per tenant."""

__version__ = "2.0.0"
