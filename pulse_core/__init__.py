"""Core logic for observation analysis, signals and risk parameters.

This package contains pure business logic with no I/O dependencies
(no network, files or sockets). The service layer (pulse_app/) feeds
it copied observation windows and consumes the resulting signals and
risk parameters.
"""
