"""
MediMantra healthcare platform backend.
"""
