# Utils package for the commission backend
