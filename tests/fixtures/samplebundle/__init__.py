# package data used by the resource tests
