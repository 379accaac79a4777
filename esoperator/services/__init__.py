"""
Services Module

Key Submodules:
- podspec: Desired-state pod spec generation for Elasticsearch clusters

Usage:
    from esoperator.services.podspec import new_expected_pod_specs, new_pod
"""
