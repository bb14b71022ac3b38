"""HTTP client integrations (aiohttp, httpx). Import the submodule you need."""
