"""Tests for :mod:`identity_store.persistence`."""
