"""Daily wellness check-ins and readiness scoring."""
