"""User management: CRUD, soft delete and role assignment."""
