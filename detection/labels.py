"""Hazard class groups shared by the detector, filters, scorer and depth resolver."""

PERSON = 'person'
CROWD = 'crowd'

VEHICLE_LABELS = frozenset({'car', 'truck', 'bus'})
CYCLIST_LABELS = frozenset({'bike', 'bicycle', 'motorcycle'})
ANIMAL_LABELS = frozenset({'dog'})
SIGNAGE_LABELS = frozenset({'stop_sign', 'traffic_light'})

# Classes the pipeline cares about at all
RELEVANT_LABELS = frozenset(
    {PERSON, 'people'} | VEHICLE_LABELS | CYCLIST_LABELS | ANIMAL_LABELS | SIGNAGE_LABELS
)
