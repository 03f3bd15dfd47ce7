"""Content Hub: public content site and admin area backed by Supabase."""

__version__ = "0.1.0"
