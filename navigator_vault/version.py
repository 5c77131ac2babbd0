"""Navigator Vault Meta information.
   Navigator Vault keeps user vault records encrypted under a key
   derived from a master password that is never stored.
"""
__title__ = 'navigator_vault'
__description__ = (
   'Navigator Vault: master-password key derivation, authenticated '
   'record encryption and key rotation for password vaults.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-vault'
