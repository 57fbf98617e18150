"""boto3-backed existence checks, one per resource kind."""
