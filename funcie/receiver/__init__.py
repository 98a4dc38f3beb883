"""Application registries backed by memory or Redis."""