"""Message-bus transports for the portal proxy."""
