"""Descriptor model package.

- coordinates.py: Coordinate and GAV parsing
- errors.py: error taxonomy
- pom.py: raw descriptor reader
- interpolation.py / profiles.py: expression interpolation and profile injection
- resolver.py: model resolver used by the merge engine
- builder.py: merge engine producing effective descriptors
- overrides.py: version override extraction
- service.py: EffectiveModelBuilder entry point

Submodules are imported directly (e.g. ``from model.service import
EffectiveModelBuilder``); this package keeps no re-exports so that
registry/* can depend on model.errors without import cycles.
"""
