# gitsafe/base: configuration and the connected-account session.
