"""Salary and dividend tax planning for UK owner-managed companies."""
