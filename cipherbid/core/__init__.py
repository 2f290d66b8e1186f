"""
Cipherbid orchestration core: registry, grants, bid evaluation, timeout.
"""
