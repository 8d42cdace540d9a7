"""greylistd: a local greylisting policy daemon.

MTA policy hooks connect to a UNIX socket once per transaction and ask
whether a (sender IP, sender, recipient) triplet is white, grey or black.
"""
__version__ = "0.1.0"
