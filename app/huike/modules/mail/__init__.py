"""
Mail templates.

Templates carry ``{param}`` placeholders in title and content; the code is a
unique, human-chosen identifier used by senders to look a template up.
"""
