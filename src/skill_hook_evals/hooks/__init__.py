"""Hook configurations installed into each sandbox."""
