"""
PeopleDesk HRM - Schemas Package

Pydantic schemas for request/response validation.
"""
