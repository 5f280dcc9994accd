"""Supabase infrastructure module"""
from .client import create_supabase_client
from .document_store import SupabaseDocumentStore

__all__ = ['create_supabase_client', 'SupabaseDocumentStore']
