"""Runtime for the signal engine: settings, exchange access, strategy lifecycle."""
