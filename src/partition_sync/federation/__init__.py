"""Trust material planning, secret relocation and namespace policy."""
