"""Robustness testing for HTTP servers.

What follows here is a quick tour of the code.

Overview
========

heelgun sends many randomized requests to a web server and records
every request the server fails on: a response with a 5xx status or
a response that breaks down at the HTTP level. It does not check whether
a response is correct; finding a server error is the whole point.

What to request is described by *test targets*, which are loaded by
`heelgun.config` from a JSON or YAML file, or from a Play Framework
C{routes} file. A target is an endpoint plus an HTTP method plus a list of
arguments: path segments and query parameters whose values are produced
by *generators* (`heelgun.generator`).

Entry Point
===========

`heelgun.cmdline.main` parses command line arguments and then calls
`heelgun.cmdline.run` to start a test run.

A test run loads the targets, opens a `heelgun.recorder.FailureRecorder`
on the output directory and hands both to a
`heelgun.pipeline.Pipeline`, which samples request URIs, sends the
requests and passes every classified outcome to the recorder.

Key Concepts
============

A *trial* is one sampled request for a target. Trials are independent:
a trial that cannot be sampled, built or sent is logged and skipped,
without affecting the other trials.

The result of a trial that reached the server is a
`heelgun.outcome.ServerOutcome`. Bad outcomes are written to
C{failures.csv} in the output directory and, for server errors, the
response body is saved next to it under C{<METHOD>/<path>/%body}.
"""
