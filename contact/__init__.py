"""
Contact Form App

Handles the public contact form:
- Multipart submission endpoint with reCAPTCHA verification
- Server-side re-validation of the form fields
- Plain-text acknowledgement email to the submitter
- Headless form client that drives the endpoint
"""
