[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netsamples"
version = "0.1.0"
description = "Small socket programs: TCP sender and receiver, ICMP ping, UDP broadcast and multicast"
requires-python = ">=3.10"
dependencies = []
keywords = ["sockets", "tcp", "udp", "icmp", "ping", "broadcast", "multicast", "networking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
netsamples-tcp-receiver = "netsamples.tcp:receiver_main"
netsamples-tcp-sender = "netsamples.tcp:sender_main"
netsamples-ping = "netsamples.icmp:main"
netsamples-broadcast = "netsamples.broadcast:sender_main"
netsamples-broadcast-receiver = "netsamples.broadcast:receiver_main"
netsamples-multicast = "netsamples.multicast:sender_main"
netsamples-multicast-receiver = "netsamples.multicast:receiver_main"

[tool.hatch.build.targets.wheel]
packages = ["netsamples"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
