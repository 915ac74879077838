"""Pipeline stages — plan, placer, scad, emitter.

Each stage consumes the previous stage's output and never mutates it.
The stages in order:

  plan     — normalize the planner's raw JSON into a canonical DesignPlan
  placer   — resolve ports, posts and vents onto the enclosure faces
  scad     — compile plan + placements into an OpenSCAD program
  emitter  — write the program under a fresh id and render it to STL

``request`` drives one prompt through all of them; ``state`` holds the
request state machine.
"""
