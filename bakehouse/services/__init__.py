"""Service layer for the bakehouse production engine"""
