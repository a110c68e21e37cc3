"""
Email package.

Modules:
- client: EmailClient for handing templated emails to the email service API

Template rendering and delivery live in the email service; this package only
forwards a template type and its data.
"""
