"""SSH Mounter - mount remote directories over sshfs from saved host profiles."""

__version__ = "0.1.0"
