"""
API Package

httpx-based client and typed services for the exam platform backend.
"""

from .client import ApiClient, ApiError, AuthTokenMissingError
from .envelope import Page, unwrap
from .auth import StoredTokenProvider, stored_token
from .admin_service import AdminService, ExamFilters
from .taxonomy_service import Category, Difficulty, Subcategory, TaxonomyService

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthTokenMissingError",
    "Page",
    "unwrap",
    "StoredTokenProvider",
    "stored_token",
    "AdminService",
    "ExamFilters",
    "Category",
    "Difficulty",
    "Subcategory",
    "TaxonomyService",
]
