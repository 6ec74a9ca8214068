"""Trading-signal engine: indicators, strategies, and trade bookkeeping.

This package contains pure business logic with no I/O dependencies
(no exchange, network, or file access). Collaborators such as the order
executor, portfolio provider, and event sink are injected by the
runtime in trader/.
"""
