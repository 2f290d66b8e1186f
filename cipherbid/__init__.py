"""
Cipherbid

Sealed-bid auction orchestration over an encrypted-arithmetic engine:
- Encrypted running leader per auction
- Oblivious (branch-free) leader updates
- Capability grants for authorized decryption
- Advisory inactivity timeout computed under encryption
"""
