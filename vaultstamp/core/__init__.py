# Core infrastructure: config, logging, errors, identity, rate limiting
