"""Small socket programs: TCP, ICMP echo, UDP broadcast and multicast."""

__version__ = "0.1.0"