"""Tests for :mod:`identity_store.stores`."""
