"""
Kernel Layer

Foundational components shared by the engines and the API:
- Identity Core (credentials, bearer tokens, revocation)
- Data models (users, products, lookup tables)
- Object storage adapter
"""
