"""EDWIND training management backend."""
