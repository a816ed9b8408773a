"""
Core Pipeline Components

registry     - reference case snapshot
retrieval    - deterministic similarity ranking
collaborators - anatomy classifier, registry probe, reasoning synthesizer
pipeline     - stage controller and progress state
"""
