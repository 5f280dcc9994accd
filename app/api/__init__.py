# API package: shared dependencies, error mapping and the root router (app.api.base)
