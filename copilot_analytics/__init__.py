"""Analytics over assistant chat logs and appointment records."""
