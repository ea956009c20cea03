"""
PeopleDesk HRM - Routers Package

FastAPI route handlers.

Routers:
- auth: Tenant registration and login
- employees: Onboarding and salary structures
- attendance: Check-in / check-out, activity feed, report export
- leave: Balances, applications, approvals, policies
- payroll: Preview, processing, register export
"""
