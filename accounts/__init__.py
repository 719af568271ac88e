"""Accounts Service - user CRUD, login, registration and password resets."""
