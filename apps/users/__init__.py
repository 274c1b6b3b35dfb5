"""Users app package.

Identity is owned by the authentication service; this app only keeps the
account row that listings reference as their owner.
"""
