"""SuperMind report pipeline.

sessions       -- per-user/project conversation store
clients        -- Langflow flow-execution clients (gateway, direct API)
report         -- visualization extraction, rendering, orchestration
chat_service   -- front-end surface over the orchestrator and sessions
"""
