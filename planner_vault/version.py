"""Planner Vault Meta information.
   Planner Vault keeps the planner state encrypted under a password-derived key.
"""
__title__ = 'planner_vault'
__description__ = (
   'Planner Vault keeps the planner state encrypted '
   'under a password-derived key.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
