"""TeamHub: multi-tenant sports club backend."""
