"""Listings app package.

This app encapsulates the container/unit composition engine: listings that
group independently rentable units, the records composed around a listing
(location, contact, features, images, institutions, services, rules and
common areas) and the rental-mode lifecycle of containers.
"""
