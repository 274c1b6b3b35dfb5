"""
Shared Kernel

Building blocks the listings engine is written against: entity, aggregate
and event base classes, value objects, domain error kinds, the unit of
work and the in-process message bus that fans committed events out.
"""
