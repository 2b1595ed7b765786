"""
wgproxy - relay UDP traffic (e.g. WireGuard) over a TCP connection.

Each accepted TCP connection gets its own local UDP socket, connected to a
fixed remote UDP endpoint, and bytes are relayed in both directions for the
lifetime of the connection.
"""

__version__ = "0.1.0"
