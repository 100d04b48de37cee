"""Application package for the gym management backend.

The FastAPI application lives in `main`, the GraphQL schema in
`graphql_api`; both delegate to `services`, which enforce the role and
ownership rules on top of `repositories` and the SQLModel tables in
`models`.
"""
