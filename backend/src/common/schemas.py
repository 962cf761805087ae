from pydantic import BaseModel, ConfigDict

class AppBaseModel(BaseModel):
    """
    Global base model for the application.
    Centralizes Pydantic configuration (strict mode, stripping, etc.).
    """
    model_config = ConfigDict(
        strict=True,                # No implicit type coercion (ex: "1" != 1)
        str_strip_whitespace=True,  # Auto-strip whitespace from strings
        validate_assignment=True,   # Validate values even when setting attributes after creation
        from_attributes=True,       # Enable ORM mode (SQLAlchemy -> Pydantic)
        frozen=False                # Allow mutation (default)
    )


class AppResponseModel(AppBaseModel):
    """
    Base for models returned from routes.
    FastAPI re-validates a response from its JSON dump, so these accept
    coercion from JSON types (Decimal and enums arrive as strings).
    """
    model_config = ConfigDict(strict=False)
