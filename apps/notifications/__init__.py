"""Customer and store notifications: email, invoices and SMS."""
