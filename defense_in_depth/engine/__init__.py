# -*- coding: utf-8 -*-
"""
The 'engine' package contains the layer simulation engine.

State transitions are pure reducers over immutable snapshots; the
SimulationEngine dispatches timer ticks and user intents into them. The
attack-path, posture comparison and quiz modes live beside it and never
share its state.
"""
