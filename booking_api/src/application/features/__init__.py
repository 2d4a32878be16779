"""
Feature modules. Each exposes HANDLERS (request type -> handler class) and
VALIDATORS (request type -> validator functions) tables that
src.application.registry.build_registry collects.
"""
