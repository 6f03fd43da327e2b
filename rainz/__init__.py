"""
Rainz: Multi-Source Weather Aggregation Engine

Queries many independent weather providers concurrently for one
latitude/longitude, normalizes every response into a common schema,
attaches an accuracy weight to each, blends in a community consensus
signal from recent user reports and returns the ensemble together with
a single "most accurate" pick.

Architecture:
    conditions.py  - Canonical condition taxonomy & unit conversions
    models.py      - WeatherSource and friends (frozen, per-request)
    registry.py    - Provider table: endpoints + static accuracy weights
    providers/     - One adapter per external source:
                     * open_meteo.py  - 7 numerical models (ECMWF, GFS, ...)
                     * weatherapi.py  - WeatherAPI.com commercial aggregator
                     * met_no.py      - Norwegian Met Institute
                     * brightsky.py   - German Weather Service (DWD)
                     * smhi.py        - Swedish Met Institute
                     * seven_timer.py - 7Timer! lightweight global model
    community.py   - Community consensus pseudo-provider
    aggregator.py  - Concurrent fan-out with per-adapter timeout
    selector.py    - Deterministic "most accurate" pick
    ensemble.py    - Weighted consensus / agreement statistics
    api.py         - Request validation and response envelopes

Entry Points:
    main.py - Command-line aggregation run
"""

__version__ = "1.0.0"
__author__ = "Rainz"
