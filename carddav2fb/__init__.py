"""
carddav2fb: synchronize a CardDAV address book into a FRITZ!Box phonebook.
"""

__version__ = "0.1.0"
