"""Report builders, one module per SonarQube resource."""
