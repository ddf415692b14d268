"""Supabase platform integration: data gateway, realtime channels and storage."""
