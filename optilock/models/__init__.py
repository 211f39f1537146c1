"""ORM Models — lockable mixins shared by application models."""
