"""Coursework tracker core: domain model, derivations, store and projections."""
