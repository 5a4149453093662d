"""
Chat Relay - Chat backend for OpenAI-compatible completion providers
====================================================================

FastAPI backend that relays conversations to a completion provider and keeps
a per-user conversation history in PostgreSQL.

Key Features:
    - **Completion Relay**: Whole replies or Server-Sent Event streaming
    - **Token Budgeting**: Reply ceiling sized to what remains of the context window
    - **Conversation Store**: Owner-scoped chats; foreign chats are indistinguishable from missing ones
    - **Session Pipeline**: Budget, relay, then persist the exchange after the reply is delivered
    - **Enterprise Logging**: Structured JSON logs with rotation and request correlation

Modules:
    api: FastAPI routes, services, middleware, and dependency wiring
    core: Configuration constants and Pydantic settings
    models: Pydantic request/response schemas and error codes
    utils: Logging, token budgeting, database pool, client factory

Architecture:
    Requests pass through request-context and CORS middleware, authenticate with
    a JWT bearer token, and reach the chat pipeline. The pipeline sizes the reply,
    calls the provider through a shared AsyncOpenAI client, and stores the
    exchange with asyncpg once the reply has been sent.
"""
