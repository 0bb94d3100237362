"""
Test support utilities for record-spine tests.

Sample records live in :mod:`tests._support.records`; the recording stub
driver lives in :mod:`tests._support.stub_driver`.
"""
