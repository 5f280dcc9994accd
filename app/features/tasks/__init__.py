"""Guarded task and project updates"""
