"""
AI receptionist backend: quoting, availability and booking for service businesses.
"""
