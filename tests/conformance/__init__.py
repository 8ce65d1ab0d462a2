"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the session ledger.

The tests are organized by invariant:
1. conservation.py - Every settled session sums to zero, and so do lifetime totals
2. atomicity.py - Settlement commits every accrual or none

These tests use hypothesis for property-based testing.
"""
