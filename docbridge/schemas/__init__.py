"""
Pydantic schemas for API request and response validation.

Document field maps are schemaless (Dict[str, Any]); everything else uses
explicit types.
"""
