"""Hosted Supabase services reached over REST."""
