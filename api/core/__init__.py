"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature relies on
(DB wiring, settings, logging, request middleware, the server handle).
Keep feature-specific SQL and business logic in the corresponding feature
package (e.g. `subscriptions/`).
"""
